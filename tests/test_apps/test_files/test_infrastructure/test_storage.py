"""Tests for blob storage and the content store."""

from io import BytesIO

import pytest
from django.core.exceptions import SuspiciousFileOperation
from django.core.files.base import ContentFile
from django.core.files.storage import FileSystemStorage, default_storage

from server.apps.files.exceptions import (
    BlobNotFoundError,
    InvalidInputError,
    NotFoundError,
    StorageFailureError,
)
from server.apps.files.infrastructure.storage import (
    BlobStorage,
    ContentStore,
    generate_storage_key,
)


@pytest.fixture
def local_store(tmp_path):
    """Content store over a temporary directory.

    Returns:
        ContentStore rooted at ``tmp_path / 'root'``.
    """
    return ContentStore(FileSystemStorage(location=tmp_path / 'root'))


class _BrokenStorage(FileSystemStorage):
    """Storage whose writes and deletes always fail."""

    def _save(self, name, content):
        raise OSError('disk full')

    def delete(self, name):
        raise OSError('device gone')


class TestGenerateStorageKey:
    """Tests for generate_storage_key function."""

    def test_key_contains_sanitized_name(self):
        """Test key ends with the sanitized name."""
        key = generate_storage_key('reports/q1.pdf')

        token, name = key.split('_', 1)
        assert len(token) == 32
        assert name == 'q1.pdf'

    def test_key_has_no_directory_component(self):
        """Test traversal attempts never reach the key."""
        key = generate_storage_key('../../../etc/passwd')

        assert '/' not in key
        assert '..' not in key
        assert key.endswith('_passwd')

    def test_keys_are_unique_for_same_name(self):
        """Test two keys for one name differ."""
        keys = {generate_storage_key('x.txt') for _ in range(100)}

        assert len(keys) == 100

    def test_long_name_is_truncated_keeping_extension(self):
        """Test key fits a 255 char column."""
        key = generate_storage_key('a' * 250 + '.pdf')

        assert len(key) <= 255
        assert key.endswith('.pdf')

    def test_empty_name_rejected(self):
        """Test unusable names are rejected."""
        with pytest.raises(InvalidInputError):
            generate_storage_key('../')


class TestContentStoreLocal:
    """Tests for ContentStore on the local filesystem."""

    def test_put_and_get(self, local_store, tmp_path):
        """Test written bytes are read back unchanged."""
        key = local_store.put(b'hello world', 'hello.txt')

        assert (tmp_path / 'root' / key).read_bytes() == b'hello world'
        with local_store.get(key) as stream:
            assert stream.read() == b'hello world'

    def test_put_file_like(self, local_store):
        """Test file-like content is accepted."""
        key = local_store.put(BytesIO(b'streamed'), 'stream.bin')

        assert local_store.read(key) == b'streamed'

    def test_put_never_writes_outside_root(self, local_store, tmp_path):
        """Test traversal names end up directly under the root."""
        key = local_store.put(b'x', '../../outside.txt')

        written = [path for path in tmp_path.rglob('*') if path.is_file()]
        assert written == [tmp_path / 'root' / key]

    def test_get_missing_key(self, local_store):
        """Test unknown key raises BlobNotFoundError."""
        with pytest.raises(BlobNotFoundError) as exc_info:
            local_store.get('0' * 32 + '_missing.txt')

        assert isinstance(exc_info.value, NotFoundError)
        assert exc_info.value.storage_key == '0' * 32 + '_missing.txt'

    def test_get_traversal_key_is_not_found(self, local_store):
        """Test keys escaping the root resolve to nothing."""
        with pytest.raises(BlobNotFoundError):
            local_store.get('../../etc/passwd')

    def test_remove(self, local_store, tmp_path):
        """Test remove deletes the blob."""
        key = local_store.put(b'bye', 'bye.txt')

        local_store.remove(key)

        assert not (tmp_path / 'root' / key).exists()

    def test_remove_is_idempotent(self, local_store):
        """Test removing a missing blob is not an error."""
        key = local_store.put(b'bye', 'bye.txt')

        local_store.remove(key)
        local_store.remove(key)

    def test_put_failure_raises_storage_failure(self, tmp_path):
        """Test backend write errors are wrapped."""
        store = ContentStore(_BrokenStorage(location=tmp_path))

        with pytest.raises(StorageFailureError):
            store.put(b'data', 'data.bin')

    def test_remove_failure_raises_storage_failure(self, tmp_path):
        """Test backend delete errors are wrapped."""
        store = ContentStore(_BrokenStorage(location=tmp_path))

        with pytest.raises(StorageFailureError):
            store.remove('key')

    def test_rollback_put_swallows_failure(self, tmp_path):
        """Test rollback is best effort."""
        store = ContentStore(_BrokenStorage(location=tmp_path))

        store.rollback_put('key')

    def test_default_storage_is_resolved_per_call(self, blob_root):
        """Test store without explicit backend follows settings."""
        store = ContentStore()

        key = store.put(b'configured', 'conf.txt')

        assert (blob_root / key).read_bytes() == b'configured'


@pytest.mark.usefixtures('mock_s3')
class TestContentStoreS3:
    """Tests for ContentStore on the S3 backend."""

    def test_put_places_blob_under_root_prefix(self, mock_s3):
        """Test blobs are stored below the configured prefix."""
        key = ContentStore().put(b's3 content', '../escape.txt')

        objects = list(mock_s3.Bucket('file-vault').objects.all())
        assert [obj.key for obj in objects] == [f'blobs/{key}']

    def test_get_reads_content(self):
        """Test content round trip through S3."""
        store = ContentStore()
        key = store.put(b's3 content', 'doc.txt')

        assert store.read(key) == b's3 content'

    def test_get_missing_key(self):
        """Test unknown key raises BlobNotFoundError."""
        with pytest.raises(BlobNotFoundError):
            ContentStore().get('missing.txt')

    def test_remove_is_idempotent(self, mock_s3):
        """Test removing twice leaves the bucket empty without error."""
        store = ContentStore()
        key = store.put(b'bye', 'bye.txt')

        store.remove(key)
        store.remove(key)

        assert not list(mock_s3.Bucket('file-vault').objects.all())

    def test_get_traversal_key_is_not_found(self):
        """Test keys with a directory part resolve to nothing."""
        with pytest.raises(BlobNotFoundError):
            ContentStore().get('../blobs/missing.txt')

    def test_remove_rejected_key_raises_storage_failure(self, mock_s3):
        """Test backend refusal surfaces as StorageFailureError."""
        store = ContentStore()

        with pytest.raises(StorageFailureError):
            store.remove('nested/key.txt')

        assert not list(mock_s3.Bucket('file-vault').objects.all())


@pytest.mark.usefixtures('mock_s3')
class TestBlobStorage:
    """Tests for BlobStorage flat key rule."""

    @pytest.mark.parametrize('name', [
        '../escape.txt',
        'nested/key.txt',
        'nested\\key.txt',
        '..',
    ])
    def test_save_rejects_non_flat_key(self, mock_s3, name):
        """Test keys with a directory part are never written."""
        with pytest.raises(SuspiciousFileOperation):
            default_storage.save(name, ContentFile(b'x'))

        assert not list(mock_s3.Bucket('file-vault').objects.all())

    @pytest.mark.parametrize('method', ['exists', 'delete'])
    def test_lookup_and_delete_reject_non_flat_key(self, method):
        """Test exists and delete refuse keys outside the root."""
        with pytest.raises(SuspiciousFileOperation):
            getattr(default_storage, method)('../other/key.txt')

    def test_flat_key_round_trip(self):
        """Test flat keys are saved, found and deleted."""
        saved = default_storage.save('0' * 32 + '_flat.txt', ContentFile(b'x'))

        assert default_storage.exists(saved)
        default_storage.delete(saved)
        assert not default_storage.exists(saved)

    def test_default_backend_is_blob_storage(self):
        """Test configured default storage uses the flat key rule."""
        assert isinstance(default_storage, BlobStorage)
