"""
Pytest configuration and fixtures for the API tests.

Provides shared fixtures for:
- An in-memory MongoDB (mongomock-motor) wiped between tests
- An httpx client bound to the ASGI app
- User, event and subscription factories
"""

import os
from datetime import timedelta

# Set test environment variables before importing app modules
os.environ['SECRET_KEY'] = 'test-secret-key'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['MONGO_DB_NAME'] = 'event_hub_test'
os.environ['USE_TRANSACTIONS'] = 'false'
os.environ['COOKIE_SECURE'] = 'false'
for _var in ('CLOUDINARY_CLOUD_NAME', 'CLOUDINARY_API_KEY', 'CLOUDINARY_API_SECRET'):
    os.environ[_var] = ''

# database.py builds its client at import time, so swap in the mock first
import motor.motor_asyncio
from mongomock_motor import AsyncMongoMockClient
motor.motor_asyncio.AsyncIOMotorClient = AsyncMongoMockClient

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

import database
from auth.auth_utils import hash_password, token_for_user
from main import app
from utils.mongo_helper import utcnow

TEST_PASSWORD = 'password123'
_TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)

ALL_COLLECTIONS = (
    database.users_collection,
    database.events_collection,
    database.subscriptions_collection,
    database.notifications_collection,
)


# ============================================================================
# Database / client fixtures
# ============================================================================

@pytest_asyncio.fixture(autouse=True)
async def clean_db():
    """Start every test from empty collections with indexes in place."""
    for collection in ALL_COLLECTIONS:
        await collection.delete_many({})
    await database.create_indexes()
    yield


@pytest_asyncio.fixture
async def client():
    """httpx client talking to the app in-process."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url='http://test') as http_client:
        yield http_client


# ============================================================================
# Sample data factories
# ============================================================================

def auth_headers(user):
    """Bearer header for the given user document."""
    return {'Authorization': f'Bearer {token_for_user(user)}'}


def future_date(days=7):
    return (utcnow() + timedelta(days=days)).strftime('%Y-%m-%d')


def past_date(days=7):
    return (utcnow() - timedelta(days=days)).strftime('%Y-%m-%d')


@pytest.fixture
def make_user():
    """Factory inserting a user document and returning it."""
    counter = {'n': 0}

    async def _create(role='user', status='active', name=None, email=None, avatar=None):
        counter['n'] += 1
        now = utcnow()
        doc = {
            'name': name or f'User {counter["n"]}',
            'email': email or f'user{counter["n"]}@eventhub.io',
            'password_hash': _TEST_PASSWORD_HASH,
            'role': role,
            'status': status,
            'avatar': avatar,
            'created_at': now,
            'updated_at': now,
        }
        result = await database.users_collection.insert_one(doc)
        doc['_id'] = result.inserted_id
        return doc

    return _create


@pytest.fixture
def make_event():
    """Factory inserting an event owned by `owner`."""
    async def _create(owner, status='active', title='Launch Party', date=None, time='18:30',
                      category='technology', banner=None):
        now = utcnow()
        doc = {
            'title': title,
            'description': f'{title} description',
            'date': date or future_date(),
            'time': time,
            'location': 'Main Hall',
            'category': category,
            'status': status,
            'banner': banner,
            'created_by': owner['_id'],
            'created_at': now,
            'updated_at': now,
        }
        result = await database.events_collection.insert_one(doc)
        doc['_id'] = result.inserted_id
        return doc

    return _create


@pytest.fixture
def subscribe():
    """Insert a subscription directly, bypassing the API."""
    async def _create(user, event):
        await database.subscriptions_collection.insert_one(
            {'user_id': user['_id'], 'event_id': event['_id'], 'created_at': utcnow()}
        )

    return _create


async def notifications_for(user_id: ObjectId, **filters):
    query = {'user_id': user_id, **filters}
    return await database.notifications_collection.find(query).to_list(length=None)
