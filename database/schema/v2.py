"""Schema v2 - Comment likes and unread notification lookups.

Changes from v1:
- Adds the comment_likes relation, one row per (comment, user)
- Adds a partial index for unread notifications
"""

from .v1 import schema as v1_schema

COMMENT_LIKES = {
    'name': 'comment_likes',
    'columns': [
        {'name': 'comment_id', 'type': 'UUID', 'nullable': False},
        {'name': 'user_id', 'type': 'UUID', 'nullable': False},
        {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
    ],
    'primary_key': ['comment_id', 'user_id'],
    'indexes': [
        {'name': 'idx_comment_likes_user', 'columns': ['user_id']}
    ]
}

UNREAD_INDEX = {
    'name': 'idx_notifications_unread',
    'columns': ['user_id'],
    'where': 'read = false'
}

def _tables():
    tables = []
    for table in v1_schema['tables']:
        if table['name'] == 'notifications':
            table = {**table, 'indexes': table['indexes'] + [UNREAD_INDEX]}
        tables.append(table)
    tables.append(COMMENT_LIKES)
    return tables

schema = {
    'version': 2,
    'tables': _tables(),
    'migrations': [
        '''
        CREATE TABLE IF NOT EXISTS comment_likes (
            comment_id UUID NOT NULL,
            user_id UUID NOT NULL,
            created_at TIMESTAMP NOT NULL DEFAULT now(),
            PRIMARY KEY (comment_id, user_id)
        )
        ''',
        'CREATE INDEX IF NOT EXISTS idx_comment_likes_user ON comment_likes(user_id)',
        'CREATE INDEX IF NOT EXISTS idx_notifications_unread ON notifications(user_id) WHERE read = false'
    ]
}
