"""Schema v3 - Newsletter, exhibitions, artist verification and page views.

Changes from v2:
- Adds newsletter_subscriptions, one row per lower-cased email
- Adds exhibitions with their admin review and promotion state
- Adds verification_requests (one per user) and their admin comments
- Adds page_views for artwork and artist analytics
"""

from .v2 import schema as v2_schema
from ..lib.schema_manager import SchemaManager

NEW_TABLES = [
    {
        'name': 'newsletter_subscriptions',
        'columns': [
            {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
            {'name': 'email', 'type': 'TEXT', 'nullable': False, 'unique': True},
            {'name': 'is_active', 'type': 'BOOLEAN', 'nullable': False, 'default': 'true'},
            {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
            {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
        ]
    },
    {
        'name': 'exhibitions',
        'columns': [
            {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
            {'name': 'artist_id', 'type': 'UUID', 'nullable': False},
            {'name': 'title', 'type': 'TEXT', 'nullable': False},
            {'name': 'description', 'type': 'TEXT', 'nullable': False},
            {'name': 'location', 'type': 'TEXT', 'nullable': False},
            {'name': 'start_date', 'type': 'TIMESTAMP', 'nullable': False},
            {'name': 'end_date', 'type': 'TIMESTAMP', 'nullable': False},
            {'name': 'cover_image', 'type': 'TEXT'},
            {'name': 'gallery_images', 'type': 'TEXT[]', 'nullable': False, 'default': "'{}'"},
            {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'PENDING'"},
            {'name': 'submission_notes', 'type': 'TEXT'},
            {'name': 'reviewed_by', 'type': 'UUID'},
            {'name': 'reviewed_at', 'type': 'TIMESTAMP'},
            {'name': 'review_notes', 'type': 'TEXT'},
            {'name': 'is_promoted', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
            {'name': 'promoted_at', 'type': 'TIMESTAMP'},
            {'name': 'promotion_notes', 'type': 'TEXT'},
            {'name': 'is_published', 'type': 'BOOLEAN', 'nullable': False, 'default': 'true'},
            {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
            {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
        ],
        'checks': [
            "status IN ('DRAFT', 'PENDING', 'APPROVED', 'REJECTED')",
            'end_date >= start_date'
        ],
        'indexes': [
            {'name': 'idx_exhibitions_artist', 'columns': ['artist_id']},
            {'name': 'idx_exhibitions_status', 'columns': ['status', 'start_date']}
        ]
    },
    {
        'name': 'verification_requests',
        'columns': [
            {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
            {'name': 'user_id', 'type': 'UUID', 'nullable': False, 'unique': True},
            {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'PENDING'"},
            {'name': 'id_document', 'type': 'TEXT', 'nullable': False},
            {'name': 'license', 'type': 'TEXT'},
            {'name': 'other_documents', 'type': 'TEXT[]', 'nullable': False, 'default': "'{}'"},
            {'name': 'submitted_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
            {'name': 'reviewed_at', 'type': 'TIMESTAMP'},
            {'name': 'reviewed_by', 'type': 'UUID'},
            {'name': 'rejection_reason', 'type': 'TEXT'},
            {'name': 'notes', 'type': 'TEXT'},
            {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
            {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
        ],
        'checks': ["status IN ('PENDING', 'APPROVED', 'REJECTED')"],
        'indexes': [
            {'name': 'idx_verification_requests_status', 'columns': ['status']}
        ]
    },
    {
        'name': 'verification_comments',
        'columns': [
            {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
            {'name': 'request_id', 'type': 'UUID', 'nullable': False},
            {'name': 'comment', 'type': 'TEXT', 'nullable': False},
            {'name': 'commented_by', 'type': 'UUID', 'nullable': False},
            {'name': 'commented_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
        ],
        'indexes': [
            {'name': 'idx_verification_comments_request', 'columns': ['request_id', 'commented_at']}
        ]
    },
    {
        'name': 'page_views',
        'columns': [
            {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
            {'name': 'artwork_id', 'type': 'UUID'},
            {'name': 'artist_id', 'type': 'UUID'},
            {'name': 'user_id', 'type': 'UUID'},
            {'name': 'page_type', 'type': 'TEXT', 'nullable': False, 'default': "'other'"},
            {'name': 'referrer', 'type': 'TEXT'},
            {'name': 'user_agent', 'type': 'TEXT'},
            {'name': 'ip_address', 'type': 'TEXT'},
            {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
        ],
        'checks': ["page_type IN ('artwork', 'artist', 'products', 'home', 'other')"],
        'indexes': [
            {'name': 'idx_page_views_artwork', 'columns': ['artwork_id', 'created_at']},
            {'name': 'idx_page_views_artist', 'columns': ['artist_id', 'created_at']},
            {'name': 'idx_page_views_user', 'columns': ['user_id']}
        ]
    }
]

def _migrations():
    statements = []
    for table in NEW_TABLES:
        statements.append(
            SchemaManager.build_table_sql(table).replace('CREATE TABLE', 'CREATE TABLE IF NOT EXISTS', 1)
        )
        for idx in table.get('indexes', []):
            statements.append(
                f"CREATE INDEX IF NOT EXISTS {idx['name']} "
                f"ON {table['name']}({', '.join(idx['columns'])})"
            )
    return statements

schema = {
    'version': 3,
    'tables': v2_schema['tables'] + NEW_TABLES,
    'migrations': _migrations()
}
