"""
Tests for the notification inbox and scheduled event reminders.
"""

from datetime import timedelta

import database
from conftest import auth_headers, notifications_for
from utils.mongo_helper import utcnow
from utils.notification_helper import build_notification, send_event_reminders


async def seed_notifications(user, count, read=False):
    docs = [
        build_notification(user['_id'], f'Notice {n}', 'Something happened', 'event_update')
        for n in range(count)
    ]
    for doc in docs:
        doc['read'] = read
    await database.notifications_collection.insert_many(docs)


class TestInbox:
    """GET /api/notifications"""

    async def test_lists_own_notifications(self, client, make_user):
        user = await make_user()
        other = await make_user()
        await seed_notifications(user, 2)
        await seed_notifications(other, 3)

        response = await client.get('/api/notifications', headers=auth_headers(user))

        body = response.json()
        assert len(body['notifications']) == 2
        assert body['unread_count'] == 2
        assert all(n['user_id'] == str(user['_id']) for n in body['notifications'])

    async def test_unread_only(self, client, make_user):
        user = await make_user()
        await seed_notifications(user, 2)
        await seed_notifications(user, 1, read=True)

        response = await client.get('/api/notifications', params={'unreadOnly': 'true'}, headers=auth_headers(user))

        body = response.json()
        assert body['pagination']['total'] == 2
        assert all(n['read'] is False for n in body['notifications'])

    async def test_requires_login(self, client):
        response = await client.get('/api/notifications')

        assert response.status_code == 401


class TestMarkRead:
    """PATCH /api/notifications/{id}/read and /api/notifications/read-all"""

    async def test_mark_one_read(self, client, make_user):
        user = await make_user()
        await seed_notifications(user, 2)
        target = (await notifications_for(user['_id']))[0]

        response = await client.patch(f'/api/notifications/{target["_id"]}/read', headers=auth_headers(user))

        assert response.status_code == 200
        assert len(await notifications_for(user['_id'], read=True)) == 1

    async def test_other_users_notification_is_not_found(self, client, make_user):
        owner = await make_user()
        intruder = await make_user()
        await seed_notifications(owner, 1)
        target = (await notifications_for(owner['_id']))[0]

        response = await client.patch(f'/api/notifications/{target["_id"]}/read', headers=auth_headers(intruder))

        assert response.status_code == 404
        assert (await notifications_for(owner['_id']))[0]['read'] is False

    async def test_mark_all_read(self, client, make_user):
        user = await make_user()
        other = await make_user()
        await seed_notifications(user, 3)
        await seed_notifications(other, 1)

        response = await client.patch('/api/notifications/read-all', headers=auth_headers(user))

        assert response.json()['updated'] == 3
        assert await notifications_for(user['_id'], read=False) == []
        assert len(await notifications_for(other['_id'], read=False)) == 1


class TestReminders:
    """send_event_reminders"""

    async def test_reminds_subscribers_once(self, make_user, make_event, subscribe):
        now = utcnow()
        soon = now + timedelta(hours=3)
        owner = await make_user()
        fan = await make_user()
        event = await make_event(owner, date=soon.strftime('%Y-%m-%d'), time=soon.strftime('%H:%M'))
        await subscribe(fan, event)

        first = await send_event_reminders(now=now)
        second = await send_event_reminders(now=now)

        assert first == 1
        assert second == 0
        notes = await notifications_for(fan['_id'], type='event_reminder')
        assert len(notes) == 1
        assert notes[0]['event_id'] == event['_id']

    async def test_skips_distant_and_inactive_events(self, make_user, make_event, subscribe):
        now = utcnow()
        soon = now + timedelta(hours=3)
        later = now + timedelta(days=5)
        owner = await make_user()
        fan = await make_user()
        pending = await make_event(owner, status='pending', date=soon.strftime('%Y-%m-%d'), time=soon.strftime('%H:%M'))
        distant = await make_event(owner, date=later.strftime('%Y-%m-%d'), time=later.strftime('%H:%M'))
        await subscribe(fan, pending)
        await subscribe(fan, distant)

        assert await send_event_reminders(now=now) == 0
