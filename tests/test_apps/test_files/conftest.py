"""Shared fixtures for files app tests."""

import boto3
import pytest
from django.contrib.auth import get_user_model
from moto import mock_aws

User = get_user_model()


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def blob_root(settings, tmp_path):
    """Store blobs on the local filesystem under a temporary root.

    Returns:
        Path of the blob root directory.
    """
    root = tmp_path / 'blobs'
    settings.STORAGES = {
        'default': {
            'BACKEND': 'django.core.files.storage.FileSystemStorage',
            'OPTIONS': {'location': str(root)},
        },
    }
    return root


@pytest.fixture
def mock_s3():
    """Mock S3 service with file-vault bucket.

    Yields:
        boto3 S3 resource with file-vault bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket='file-vault')

        yield conn
