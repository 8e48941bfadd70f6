"""Schema v1 - Initial database schema.

This version includes tables for:
- Users, artist profiles and the follow relation
- Artworks with their denormalized like and comment counters
- Likes, comments and reviews
- Orders and carts
- Notifications

No foreign keys are declared. Dependent rows are removed by the cascade
plans and carts prune items of deleted artworks when they are read.
"""

schema = {
    'version': 1,
    'tables': [
        {
            'name': 'users',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'name', 'type': 'TEXT', 'nullable': False},
                {'name': 'email', 'type': 'TEXT', 'nullable': False, 'unique': True},
                {'name': 'password_hash', 'type': 'TEXT', 'nullable': False},
                {'name': 'token', 'type': 'TEXT'},
                {'name': 'role', 'type': 'TEXT', 'nullable': False, 'default': "'BUYER'"},
                {'name': 'avatar', 'type': 'TEXT'},
                {'name': 'is_verified', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'checks': ["role IN ('ARTIST', 'BUYER', 'ADMIN')"],
            'indexes': [
                {'name': 'idx_users_token', 'columns': ['token'], 'unique': True, 'where': 'token IS NOT NULL'},
                {'name': 'idx_users_role', 'columns': ['role']}
            ]
        },
        {
            'name': 'artist_profiles',
            'columns': [
                {'name': 'user_id', 'type': 'UUID', 'primary_key': True},
                {'name': 'bio', 'type': 'TEXT', 'nullable': False, 'default': "''"},
                {'name': 'location', 'type': 'TEXT', 'nullable': False, 'default': "''"},
                {'name': 'phone', 'type': 'TEXT', 'nullable': False, 'default': "''"},
                {'name': 'website', 'type': 'TEXT', 'nullable': False, 'default': "''"},
                {'name': 'instagram', 'type': 'TEXT', 'nullable': False, 'default': "''"},
                {'name': 'facebook', 'type': 'TEXT', 'nullable': False, 'default': "''"},
                {'name': 'twitter', 'type': 'TEXT', 'nullable': False, 'default': "''"},
                {'name': 'banner_image', 'type': 'TEXT'},
                {'name': 'total_artworks', 'type': 'INT8', 'nullable': False, 'default': '0'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'checks': ['total_artworks >= 0']
        },
        {
            'name': 'follows',
            'columns': [
                {'name': 'follower_id', 'type': 'UUID', 'nullable': False},
                {'name': 'artist_id', 'type': 'UUID', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'primary_key': ['follower_id', 'artist_id'],
            'checks': ['follower_id != artist_id'],
            'indexes': [
                {'name': 'idx_follows_artist', 'columns': ['artist_id']}
            ]
        },
        {
            'name': 'artworks',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'artist_id', 'type': 'UUID', 'nullable': False},
                {'name': 'title', 'type': 'TEXT', 'nullable': False},
                {'name': 'description', 'type': 'TEXT', 'nullable': False, 'default': "''"},
                {'name': 'price', 'type': 'DECIMAL', 'nullable': False},
                {'name': 'currency', 'type': 'TEXT', 'nullable': False, 'default': "'RWF'"},
                {'name': 'dimensions', 'type': 'TEXT', 'nullable': False, 'default': "''"},
                {'name': 'medium', 'type': 'TEXT', 'nullable': False, 'default': "''"},
                {'name': 'year', 'type': 'INT8'},
                {'name': 'category', 'type': 'TEXT', 'nullable': False, 'default': "'General'"},
                {'name': 'images', 'type': 'TEXT[]', 'nullable': False, 'default': "'{}'"},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'PUBLISHED'"},
                {'name': 'likes_count', 'type': 'INT8', 'nullable': False, 'default': '0'},
                {'name': 'comments_count', 'type': 'INT8', 'nullable': False, 'default': '0'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'checks': [
                'price >= 0',
                'likes_count >= 0',
                'comments_count >= 0',
                "status IN ('DRAFT', 'PUBLISHED', 'SOLD')"
            ],
            'indexes': [
                {'name': 'idx_artworks_artist', 'columns': ['artist_id']},
                {'name': 'idx_artworks_status', 'columns': ['status']},
                {'name': 'idx_artworks_category', 'columns': ['category']}
            ]
        },
        {
            'name': 'likes',
            'columns': [
                {'name': 'artwork_id', 'type': 'UUID', 'nullable': False},
                {'name': 'user_id', 'type': 'UUID', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'primary_key': ['artwork_id', 'user_id'],
            'indexes': [
                {'name': 'idx_likes_user', 'columns': ['user_id']}
            ]
        },
        {
            'name': 'comments',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'artwork_id', 'type': 'UUID', 'nullable': False},
                {'name': 'user_id', 'type': 'UUID', 'nullable': False},
                {'name': 'content', 'type': 'TEXT', 'nullable': False},
                {'name': 'parent_comment_id', 'type': 'UUID'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'indexes': [
                {'name': 'idx_comments_artwork', 'columns': ['artwork_id', 'created_at']},
                {'name': 'idx_comments_parent', 'columns': ['parent_comment_id']},
                {'name': 'idx_comments_user', 'columns': ['user_id']}
            ]
        },
        {
            'name': 'reviews',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'artwork_id', 'type': 'UUID', 'nullable': False},
                {'name': 'user_id', 'type': 'UUID', 'nullable': False},
                {'name': 'rating', 'type': 'INT8', 'nullable': False},
                {'name': 'comment', 'type': 'TEXT', 'nullable': False, 'default': "''"},
                {'name': 'is_verified', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'checks': ['rating BETWEEN 1 AND 5'],
            'indexes': [
                {'name': 'idx_reviews_artwork_user', 'columns': ['artwork_id', 'user_id'], 'unique': True},
                {'name': 'idx_reviews_user', 'columns': ['user_id']}
            ]
        },
        {
            'name': 'orders',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'buyer_id', 'type': 'UUID', 'nullable': False},
                {'name': 'artist_id', 'type': 'UUID', 'nullable': False},
                {'name': 'artwork_id', 'type': 'UUID', 'nullable': False},
                {'name': 'amount', 'type': 'DECIMAL', 'nullable': False},
                {'name': 'currency', 'type': 'TEXT', 'nullable': False, 'default': "'RWF'"},
                {'name': 'message', 'type': 'TEXT', 'nullable': False, 'default': "''"},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'PENDING'"},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'checks': [
                'amount >= 0',
                "status IN ('PENDING', 'CONFIRMED', 'CANCELLED', 'COMPLETED')"
            ],
            'indexes': [
                {'name': 'idx_orders_buyer', 'columns': ['buyer_id', 'created_at']},
                {'name': 'idx_orders_artist', 'columns': ['artist_id', 'created_at']},
                {'name': 'idx_orders_artwork', 'columns': ['artwork_id']}
            ]
        },
        {
            'name': 'notifications',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'user_id', 'type': 'UUID', 'nullable': False},
                {'name': 'type', 'type': 'TEXT', 'nullable': False},
                {'name': 'message', 'type': 'TEXT', 'nullable': False},
                {'name': 'data', 'type': 'JSONB', 'nullable': False, 'default': "'{}'"},
                {'name': 'read', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'indexes': [
                {'name': 'idx_notifications_user', 'columns': ['user_id', 'created_at']}
            ]
        },
        {
            'name': 'carts',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'user_id', 'type': 'UUID', 'nullable': False, 'unique': True},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ]
        },
        {
            'name': 'cart_items',
            'columns': [
                {'name': 'cart_id', 'type': 'UUID', 'nullable': False},
                {'name': 'artwork_id', 'type': 'UUID', 'nullable': False},
                {'name': 'quantity', 'type': 'INT8', 'nullable': False, 'default': '1'},
                {'name': 'added_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'primary_key': ['cart_id', 'artwork_id'],
            'checks': ['quantity >= 1'],
            'indexes': [
                {'name': 'idx_cart_items_artwork', 'columns': ['artwork_id']}
            ]
        }
    ]
}
