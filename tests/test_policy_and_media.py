"""
Tests for the authorization policy and media helpers.
"""

from unittest.mock import patch

import pytest
from bson import ObjectId

from auth.policy import (
    EVENT_ACTIVATE,
    EVENT_DELETE,
    EVENT_UPDATE,
    NOTIFICATION_READ,
    USER_MANAGE,
    authorize,
    is_allowed,
)
from conftest import auth_headers
from utils.cloudinary_config import delete_images_quietly, extract_public_id_from_url
from utils.exceptions import ForbiddenException

OWNER = {'_id': ObjectId(), 'role': 'user'}
STRANGER = {'_id': ObjectId(), 'role': 'user'}
ADMIN = {'_id': ObjectId(), 'role': 'admin'}
EVENT = {'_id': ObjectId(), 'created_by': OWNER['_id']}


class TestPolicy:
    """is_allowed / authorize"""

    @pytest.mark.parametrize('caller, expected', [(OWNER, True), (STRANGER, False), (ADMIN, True)])
    def test_event_edit_and_delete(self, caller, expected):
        assert is_allowed(caller, EVENT_UPDATE, EVENT) is expected
        assert is_allowed(caller, EVENT_DELETE, EVENT) is expected

    def test_activation_is_admin_only(self):
        assert is_allowed(OWNER, EVENT_ACTIVATE, EVENT) is False
        assert is_allowed(ADMIN, EVENT_ACTIVATE, EVENT) is True

    def test_user_management_is_admin_only(self):
        assert is_allowed(OWNER, USER_MANAGE) is False
        assert is_allowed(ADMIN, USER_MANAGE) is True

    def test_notifications_belong_to_recipient_only(self):
        notification = {'_id': ObjectId(), 'user_id': OWNER['_id']}
        assert is_allowed(OWNER, NOTIFICATION_READ, notification) is True
        assert is_allowed(ADMIN, NOTIFICATION_READ, notification) is False

    def test_anonymous_caller(self):
        assert is_allowed(None, EVENT_UPDATE, EVENT) is False

    def test_authorize_raises_forbidden(self):
        with pytest.raises(ForbiddenException) as exc_info:
            authorize(STRANGER, EVENT_UPDATE, EVENT, message='Nope')
        assert exc_info.value.status_code == 403
        assert exc_info.value.message == 'Nope'


class TestPublicIdExtraction:
    """extract_public_id_from_url"""

    def test_versioned_url(self):
        url = 'https://res.cloudinary.com/demo/image/upload/v1712345678/event-management/avatars/me.png'
        assert extract_public_id_from_url(url) == 'event-management/avatars/me'

    def test_unversioned_url_with_query(self):
        url = 'https://res.cloudinary.com/demo/image/upload/banners/summer.jpg?_a=xyz'
        assert extract_public_id_from_url(url) == 'banners/summer'

    @pytest.mark.parametrize('url', [None, '', 'https://example.com/picture.jpg'])
    def test_not_a_cloudinary_upload(self, url):
        assert extract_public_id_from_url(url) is None


class TestQuietDeletion:
    """delete_images_quietly"""

    def test_unconfigured_storage_deletes_nothing(self):
        urls = ['https://res.cloudinary.com/demo/image/upload/v1/a.jpg']
        with patch('utils.cloudinary_config.delete_image') as destroy:
            assert delete_images_quietly(urls) == 0
        destroy.assert_not_called()

    def test_bulk_failures_are_counted_not_raised(self):
        urls = [
            'https://res.cloudinary.com/demo/image/upload/v1/a.jpg',
            None,
            'https://res.cloudinary.com/demo/image/upload/v1/b.jpg',
        ]
        with patch('utils.cloudinary_config.is_configured', return_value=True), \
                patch('utils.cloudinary_config.delete_images',
                      return_value={'deleted': ['a'], 'failed': ['b']}) as bulk:
            assert delete_images_quietly(urls) == 1
        bulk.assert_called_once_with(['a', 'b'])


class TestUploadEndpoint:
    """POST /api/upload/image and DELETE /api/upload/delete"""

    async def test_rejects_non_image(self, client, make_user):
        user = await make_user()

        response = await client.post(
            '/api/upload/image', files={'file': ('notes.txt', b'hello', 'text/plain')}, headers=auth_headers(user)
        )

        assert response.status_code == 400
        assert response.json()['message'] == 'Invalid file type. Only JPEG, PNG, and WebP are allowed'

    async def test_rejects_oversized_file(self, client, make_user):
        user = await make_user()
        blob = b'0' * (5 * 1024 * 1024 + 1)

        response = await client.post(
            '/api/upload/image', files={'file': ('big.png', blob, 'image/png')}, headers=auth_headers(user)
        )

        assert response.status_code == 400
        assert response.json()['message'] == 'File size too large. Maximum 5MB allowed'

    async def test_storage_failure_is_500(self, client, make_user):
        user = await make_user()

        response = await client.post(
            '/api/upload/image', files={'file': ('pic.png', b'\x89PNG', 'image/png')},
            data={'type': 'user-avatar'}, headers=auth_headers(user),
        )

        assert response.status_code == 500
        assert response.json()['error_code'] == 'UPLOAD_FAILED'

    async def test_upload_returns_url(self, client, make_user):
        user = await make_user()
        stored = {'url': 'https://res.cloudinary.com/demo/image/upload/v1/x.png', 'public_id': 'x',
                  'width': 200, 'height': 200}

        with patch('controllers.upload_controller.upload_image_to_cloudinary', return_value=stored) as upload:
            response = await client.post(
                '/api/upload/image', files={'file': ('pic.png', b'\x89PNG', 'image/png')},
                data={'type': 'user-avatar'}, headers=auth_headers(user),
            )

        assert response.json()['data'] == stored
        assert upload.call_args.args[1] == 'user-avatar'
        assert upload.call_args.args[0].startswith('data:image/png;base64,')

    async def test_delete_needs_reference(self, client, make_user):
        user = await make_user()

        response = await client.request('DELETE', '/api/upload/delete', json={}, headers=auth_headers(user))

        assert response.status_code == 400
