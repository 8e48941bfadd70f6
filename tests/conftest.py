"""Shared fixtures: scripted fake connections and a notification recorder."""

import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, List

import pytest

DEFAULTS = {
    'fetch': [],
    'fetchrow': None,
    'fetchval': None,
    'execute': 'OK'
}

class FakeConnection:
    """Connection returning scripted results per method, in call order.
    
    When a method's script runs out it returns that method's default. A
    scripted Exception instance is raised instead of returned.
    """
    
    def __init__(self, **scripts: List[Any]):
        self.scripts = {method: list(scripts.get(method, [])) for method in DEFAULTS}
        self.calls: List[Dict[str, Any]] = []
        self.transactions: List[str] = []
        self.transaction_options: List[Dict[str, Any]] = []
    
    async def _call(self, method: str, sql: str, *args):
        self.calls.append({'method': method, 'sql': sql, 'args': args})
        script = self.scripts[method]
        result = script.pop(0) if script else DEFAULTS[method]
        if isinstance(result, Exception):
            raise result
        return result
    
    async def fetch(self, sql, *args):
        return await self._call('fetch', sql, *args)
    
    async def fetchrow(self, sql, *args):
        return await self._call('fetchrow', sql, *args)
    
    async def fetchval(self, sql, *args):
        return await self._call('fetchval', sql, *args)
    
    async def execute(self, sql, *args):
        return await self._call('execute', sql, *args)
    
    @asynccontextmanager
    async def transaction(self, **options):
        self.transactions.append('begin')
        self.transaction_options.append(options)
        try:
            yield
        except BaseException:
            self.transactions.append('rollback')
            raise
        self.transactions.append('commit')
    
    def sql(self, method: str = None) -> List[str]:
        """SQL of the recorded calls, optionally for one method only."""
        return [call['sql'] for call in self.calls if method is None or call['method'] == method]

class FakePool:
    """Pool handing out a single FakeConnection."""
    
    def __init__(self, conn: FakeConnection):
        self.conn = conn
        self.acquired = 0
    
    @asynccontextmanager
    async def acquire(self):
        self.acquired += 1
        yield self.conn

class NotificationRecorder:
    """Stand-in for `notifications.dispatch` that records its calls."""
    
    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
    
    def __call__(self, user_id, type, message, data=None):
        self.calls.append({'user_id': user_id, 'type': type, 'message': message, 'data': data})
    
    def of_type(self, type: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if call['type'] == type]

@pytest.fixture
def make_pool():
    """Build a FakePool around a connection with the given scripts."""
    def _make(**scripts):
        return FakePool(FakeConnection(**scripts))
    return _make

@pytest.fixture
def notifier():
    return NotificationRecorder()

@pytest.fixture
def ids():
    """Fresh UUIDs for the usual actors and objects."""
    return {
        'artist': uuid.uuid4(),
        'buyer': uuid.uuid4(),
        'admin': uuid.uuid4(),
        'artwork': uuid.uuid4(),
        'comment': uuid.uuid4(),
        'cart': uuid.uuid4(),
        'order': uuid.uuid4()
    }

@pytest.fixture
def artist(ids):
    return {'id': ids['artist'], 'name': 'Ada Artist', 'email': 'ada@example.com', 'role': 'ARTIST'}

@pytest.fixture
def buyer(ids):
    return {'id': ids['buyer'], 'name': 'Ben Buyer', 'email': 'ben@example.com', 'role': 'BUYER'}

@pytest.fixture
def admin(ids):
    return {'id': ids['admin'], 'name': 'Root Admin', 'email': 'root@example.com', 'role': 'ADMIN'}
