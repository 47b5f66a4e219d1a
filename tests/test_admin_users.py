"""
Tests for admin user management: role and status changes and account deletion.
"""

from unittest.mock import AsyncMock, patch

import pytest
from bson import ObjectId

import database
from conftest import auth_headers, notifications_for
from utils.cloudinary_config import delete_images_quietly
from utils.exceptions import ValidationException
from utils.moderation_helper import change_user_role, change_user_status


class TestUserListing:
    """GET /api/admin/users and /api/admin/users/{id}"""

    async def test_search_and_stats(self, client, make_user, make_event, subscribe):
        admin = await make_user(role='admin', name='Root')
        ada = await make_user(name='Ada Lovelace')
        await make_user(name='Grace Hopper')
        event = await make_event(ada)
        await subscribe(admin, event)

        response = await client.get('/api/admin/users', params={'search': 'ada'}, headers=auth_headers(admin))

        users = response.json()['users']
        assert [user['name'] for user in users] == ['Ada Lovelace']
        assert users[0]['stats'] == {'events_created': 1, 'events_subscribed': 0}
        assert 'password_hash' not in users[0]

    async def test_filter_by_role(self, client, make_user):
        admin = await make_user(role='admin')
        await make_user()

        response = await client.get('/api/admin/users', params={'role': 'admin'}, headers=auth_headers(admin))

        assert [user['id'] for user in response.json()['users']] == [str(admin['_id'])]

    async def test_unknown_user(self, client, make_user):
        admin = await make_user(role='admin')

        response = await client.get('/api/admin/users/0123456789abcdef01234567', headers=auth_headers(admin))

        assert response.status_code == 404


class TestRoleChange:
    """PATCH /api/admin/users/{id}/role"""

    async def test_promotion_activates_pending_events(self, client, make_user, make_event):
        admin = await make_user(role='admin')
        user = await make_user()
        await make_event(user, status='pending')
        await make_event(user, status='pending')
        await make_event(user, status='cancelled')

        response = await client.patch(
            f'/api/admin/users/{user["_id"]}/role', json={'role': 'admin'}, headers=auth_headers(admin)
        )

        body = response.json()
        assert body['events_activated'] == 2
        assert body['previous_role'] == 'user'
        assert await database.events_collection.count_documents({'created_by': user['_id'], 'status': 'active'}) == 2
        notes = await notifications_for(user['_id'])
        assert len(notes) == 1
        assert notes[0]['title'] == 'Role Updated'

    async def test_demotion_with_another_admin(self, client, make_user):
        admin = await make_user(role='admin')
        other = await make_user(role='admin')

        response = await client.patch(
            f'/api/admin/users/{other["_id"]}/role', json={'role': 'user'}, headers=auth_headers(admin)
        )

        assert response.status_code == 200
        stored = await database.users_collection.find_one({'_id': other['_id']})
        assert stored['role'] == 'user'

    async def test_cannot_change_own_role(self, client, make_user):
        admin = await make_user(role='admin')
        await make_user(role='admin')

        response = await client.patch(
            f'/api/admin/users/{admin["_id"]}/role', json={'role': 'user'}, headers=auth_headers(admin)
        )

        assert response.status_code == 400
        assert response.json()['message'] == 'You cannot change your own role'

    async def test_invalid_role(self, client, make_user):
        admin = await make_user(role='admin')
        user = await make_user()

        response = await client.patch(
            f'/api/admin/users/{user["_id"]}/role', json={'role': 'superuser'}, headers=auth_headers(admin)
        )

        assert response.status_code == 400

    async def test_last_admin_cannot_be_demoted(self, make_user):
        # the caller is not an active admin in the database, so the target is the only one
        caller = {'_id': ObjectId(), 'role': 'admin'}
        target = await make_user(role='admin')

        with pytest.raises(ValidationException, match='Cannot demote the last admin'):
            await change_user_role(caller, str(target['_id']), 'user')

        stored = await database.users_collection.find_one({'_id': target['_id']})
        assert stored['role'] == 'admin'

    async def test_same_role_sends_nothing(self, client, make_user):
        admin = await make_user(role='admin')
        user = await make_user()

        response = await client.patch(
            f'/api/admin/users/{user["_id"]}/role', json={'role': 'user'}, headers=auth_headers(admin)
        )

        assert response.json()['changed'] is False
        assert await notifications_for(user['_id']) == []


class TestStatusChange:
    """PATCH /api/admin/users/{id}/status"""

    async def test_suspension_moves_active_events_to_pending(self, client, make_user, make_event):
        admin = await make_user(role='admin')
        user = await make_user()
        await make_event(user, status='active')
        await make_event(user, status='active')

        response = await client.patch(
            f'/api/admin/users/{user["_id"]}/status', json={'status': 'suspended'}, headers=auth_headers(admin)
        )

        assert response.json()['events_deactivated'] == 2
        assert await database.events_collection.count_documents({'created_by': user['_id'], 'status': 'pending'}) == 2
        notes = await notifications_for(user['_id'])
        assert len(notes) == 1
        assert notes[0]['title'] == 'Account Suspended'

    async def test_suspended_user_locked_out(self, client, make_user):
        admin = await make_user(role='admin')
        user = await make_user()

        await client.patch(
            f'/api/admin/users/{user["_id"]}/status', json={'status': 'suspended'}, headers=auth_headers(admin)
        )
        response = await client.get('/api/auth/me', headers=auth_headers(user))

        assert response.status_code == 401

    async def test_reactivation(self, client, make_user):
        admin = await make_user(role='admin')
        user = await make_user(status='suspended')

        response = await client.patch(
            f'/api/admin/users/{user["_id"]}/status', json={'status': 'active'}, headers=auth_headers(admin)
        )

        assert response.json()['changed'] is True
        notes = await notifications_for(user['_id'])
        assert notes[0]['title'] == 'Account Reactivated'

    async def test_same_status_sends_nothing(self, client, make_user):
        admin = await make_user(role='admin')
        user = await make_user()

        response = await client.patch(
            f'/api/admin/users/{user["_id"]}/status', json={'status': 'active'}, headers=auth_headers(admin)
        )

        assert response.json()['changed'] is False
        assert await notifications_for(user['_id']) == []

    async def test_cannot_change_own_status(self, client, make_user):
        admin = await make_user(role='admin')

        response = await client.patch(
            f'/api/admin/users/{admin["_id"]}/status', json={'status': 'suspended'}, headers=auth_headers(admin)
        )

        assert response.status_code == 400

    async def test_last_admin_cannot_be_suspended(self, make_user):
        caller = {'_id': ObjectId(), 'role': 'admin'}
        target = await make_user(role='admin')

        with pytest.raises(ValidationException):
            await change_user_status(caller, str(target['_id']), 'suspended')

    async def test_put_applies_role_and_status(self, client, make_user):
        admin = await make_user(role='admin')
        user = await make_user()

        response = await client.put(
            f'/api/admin/users/{user["_id"]}', json={'role': 'admin', 'status': 'suspended'},
            headers=auth_headers(admin),
        )

        user_body = response.json()['user']
        assert user_body['role'] == 'admin'
        assert user_body['status'] == 'suspended'

    async def test_put_with_invalid_status_writes_nothing(self, client, make_user, make_event):
        admin = await make_user(role='admin')
        user = await make_user()
        event = await make_event(user, status='pending')

        response = await client.put(
            f'/api/admin/users/{user["_id"]}', json={'role': 'admin', 'status': 'bogus'},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        assert response.json()['message'] == 'Invalid status. Must be one of: active, suspended'
        stored = await database.users_collection.find_one({'_id': user['_id']})
        assert stored['role'] == 'user'
        stored_event = await database.events_collection.find_one({'_id': event['_id']})
        assert stored_event['status'] == 'pending'
        assert await notifications_for(user['_id']) == []

    async def test_put_with_invalid_role_writes_nothing(self, client, make_user, make_event):
        admin = await make_user(role='admin')
        user = await make_user()
        await make_event(user, status='active')

        response = await client.put(
            f'/api/admin/users/{user["_id"]}', json={'role': 'owner', 'status': 'suspended'},
            headers=auth_headers(admin),
        )

        assert response.status_code == 400
        stored = await database.users_collection.find_one({'_id': user['_id']})
        assert stored['status'] == 'active'
        assert await database.events_collection.count_documents({'status': 'active'}) == 1

    async def test_put_needs_a_field(self, client, make_user):
        admin = await make_user(role='admin')
        user = await make_user()

        response = await client.put(f'/api/admin/users/{user["_id"]}', json={}, headers=auth_headers(admin))

        assert response.status_code == 400


class TestDeleteUser:
    """DELETE /api/admin/users/{id}"""

    async def test_cascade(self, client, make_user, make_event, subscribe):
        admin = await make_user(role='admin')
        doomed = await make_user()
        fan = await make_user()
        doomed_event = await make_event(doomed)
        other_event = await make_event(admin)
        await subscribe(fan, doomed_event)
        await subscribe(doomed, other_event)
        await database.notifications_collection.insert_one(
            {'user_id': fan['_id'], 'event_id': doomed_event['_id'], 'type': 'event_update', 'read': False}
        )

        response = await client.delete(f'/api/admin/users/{doomed["_id"]}', headers=auth_headers(admin))

        body = response.json()
        assert body['events_deleted'] == 1
        assert body['subscriptions_deleted'] == 2
        assert body['notifications_deleted'] == 1
        assert await database.users_collection.find_one({'_id': doomed['_id']}) is None
        assert await database.events_collection.find_one({'_id': doomed_event['_id']}) is None
        assert await database.events_collection.find_one({'_id': other_event['_id']}) is not None
        assert await database.subscriptions_collection.count_documents({}) == 0

    async def test_media_cleanup_runs_off_the_event_loop(self, client, make_user, make_event):
        admin = await make_user(role='admin')
        avatar = 'https://res.cloudinary.com/demo/image/upload/v1/event-management/avatars/doomed.png'
        doomed = await make_user(avatar=avatar)
        await make_event(doomed, banner=None)

        with patch('utils.moderation_helper.run_in_threadpool', new=AsyncMock(return_value=1)) as threadpool:
            response = await client.delete(f'/api/admin/users/{doomed["_id"]}', headers=auth_headers(admin))

        threadpool.assert_awaited_once_with(delete_images_quietly, [avatar, None])
        assert response.json()['images_deleted'] == 1

    async def test_cannot_delete_self(self, client, make_user):
        admin = await make_user(role='admin')

        response = await client.delete(f'/api/admin/users/{admin["_id"]}', headers=auth_headers(admin))

        assert response.status_code == 400
        assert response.json()['message'] == 'You cannot delete your own account'
