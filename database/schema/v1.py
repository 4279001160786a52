"""Schema v1 - Initial marketplace schema.

This version includes tables for:
- Profiles and sessions
- Products, variants and downloadable files
- Purchases reconciled against Razorpay orders
- Contact messages and product reports
"""

schema = {
    'version': 1,
    'tables': [
        {
            'name': 'profiles',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'email', 'type': 'TEXT', 'nullable': False},
                {'name': 'password_hash', 'type': 'TEXT', 'nullable': False},
                {'name': 'name', 'type': 'TEXT'},
                {'name': 'username', 'type': 'TEXT'},
                {'name': 'display_name', 'type': 'TEXT'},
                {'name': 'bio', 'type': 'TEXT'},
                {'name': 'avatar_url', 'type': 'TEXT'},
                {'name': 'roles', 'type': 'TEXT[]', 'nullable': False, 'default': "ARRAY['customer']"},
                {'name': 'is_verified_seller', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'show_admin_badge', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'is_active', 'type': 'BOOLEAN', 'nullable': False, 'default': 'true'},
                {'name': 'is_restricted', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'checks': [
                {'name': 'chk_profiles_roles',
                 'expression': "roles <@ ARRAY['customer','seller','creator','admin']::TEXT[] "
                               "AND cardinality(roles) > 0"}
            ],
            'indexes': [
                {'name': 'idx_profiles_email', 'columns': ['email'], 'unique': True},
                {'name': 'idx_profiles_username', 'columns': ['username'], 'unique': True,
                 'where': 'username IS NOT NULL'}
            ]
        },
        {
            'name': 'auth_sessions',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'profile_id', 'type': 'UUID', 'nullable': False},
                {'name': 'token', 'type': 'TEXT', 'nullable': False},
                {'name': 'expires_at', 'type': 'TIMESTAMP', 'nullable': False},
                {'name': 'revoked', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'revoked_at', 'type': 'TIMESTAMP'},
                {'name': 'user_agent', 'type': 'TEXT'},
                {'name': 'ip_address', 'type': 'TEXT'},
                {'name': 'last_used_at', 'type': 'TIMESTAMP'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['profile_id'], 'references': 'profiles(id)'}
            ],
            'indexes': [
                {'name': 'idx_sessions_profile', 'columns': ['profile_id']},
                {'name': 'idx_sessions_token', 'columns': ['token'], 'unique': True}
            ]
        },
        {
            'name': 'products',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'creator_id', 'type': 'UUID', 'nullable': False},
                {'name': 'name', 'type': 'TEXT', 'nullable': False},
                {'name': 'description', 'type': 'TEXT'},
                {'name': 'short_description', 'type': 'TEXT'},
                {'name': 'long_description', 'type': 'TEXT'},
                {'name': 'price', 'type': 'DECIMAL(12, 2)', 'nullable': False, 'default': '0'},
                {'name': 'currency', 'type': 'TEXT', 'nullable': False, 'default': "'INR'"},
                {'name': 'categories', 'type': 'TEXT[]', 'nullable': False, 'default': "'{}'"},
                {'name': 'tags', 'type': 'TEXT[]', 'nullable': False, 'default': "'{}'"},
                {'name': 'thumbnail_url', 'type': 'TEXT'},
                {'name': 'preview_images', 'type': 'TEXT[]', 'nullable': False, 'default': "'{}'"},
                {'name': 'preview_videos', 'type': 'TEXT[]', 'nullable': False, 'default': "'{}'"},
                {'name': 'page_color', 'type': 'TEXT'},
                {'name': 'is_active', 'type': 'BOOLEAN', 'nullable': False, 'default': 'true'},
                {'name': 'is_featured', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['creator_id'], 'references': 'profiles(id)'}
            ],
            'indexes': [
                {'name': 'idx_products_creator', 'columns': ['creator_id']},
                {'name': 'idx_products_active', 'columns': ['is_active', 'created_at']}
            ]
        },
        {
            'name': 'product_variants',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'product_id', 'type': 'UUID', 'nullable': False},
                {'name': 'name', 'type': 'TEXT', 'nullable': False},
                {'name': 'description', 'type': 'TEXT'},
                {'name': 'price', 'type': 'DECIMAL(12, 2)', 'nullable': False},
                {'name': 'is_active', 'type': 'BOOLEAN', 'nullable': False, 'default': 'true'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['product_id'], 'references': 'products(id)'}
            ],
            'indexes': [
                {'name': 'idx_variants_product', 'columns': ['product_id']}
            ]
        },
        {
            'name': 'product_files',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'product_id', 'type': 'UUID', 'nullable': False},
                {'name': 'file_name', 'type': 'TEXT', 'nullable': False},
                {'name': 'file_path', 'type': 'TEXT', 'nullable': False},
                {'name': 'file_size', 'type': 'INT8', 'nullable': False, 'default': '0'},
                {'name': 'content_type', 'type': 'TEXT'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['product_id'], 'references': 'products(id)'}
            ],
            'indexes': [
                {'name': 'idx_files_product', 'columns': ['product_id']}
            ]
        },
        {
            'name': 'purchases',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'customer_id', 'type': 'UUID', 'nullable': False},
                {'name': 'product_id', 'type': 'UUID', 'nullable': False},
                {'name': 'seller_id', 'type': 'UUID', 'nullable': False},
                {'name': 'variant_id', 'type': 'UUID'},
                {'name': 'amount', 'type': 'DECIMAL(12, 2)', 'nullable': False},
                {'name': 'currency', 'type': 'TEXT', 'nullable': False, 'default': "'INR'"},
                {'name': 'platform_fee', 'type': 'DECIMAL(12, 2)', 'nullable': False, 'default': '0'},
                {'name': 'creator_earnings', 'type': 'DECIMAL(12, 2)', 'nullable': False, 'default': '0'},
                {'name': 'payment_provider', 'type': 'TEXT', 'nullable': False, 'default': "'razorpay'"},
                {'name': 'razorpay_order_id', 'type': 'TEXT'},
                {'name': 'razorpay_payment_id', 'type': 'TEXT'},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'pending'"},
                {'name': 'license_key', 'type': 'TEXT', 'nullable': False},
                {'name': 'discount_code_id', 'type': 'UUID'},
                {'name': 'discount_amount', 'type': 'DECIMAL(12, 2)', 'nullable': False, 'default': '0'},
                {'name': 'purchased_at', 'type': 'TIMESTAMP'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['customer_id'], 'references': 'profiles(id)'},
                {'columns': ['product_id'], 'references': 'products(id)'},
                {'columns': ['seller_id'], 'references': 'profiles(id)'}
            ],
            'indexes': [
                {'name': 'idx_purchases_order', 'columns': ['razorpay_order_id']},
                {'name': 'idx_purchases_customer', 'columns': ['customer_id']},
                {'name': 'idx_purchases_seller', 'columns': ['seller_id']},
                {'name': 'idx_purchases_license', 'columns': ['license_key'], 'unique': True}
            ]
        },
        {
            'name': 'contact_messages',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'name', 'type': 'TEXT', 'nullable': False},
                {'name': 'email', 'type': 'TEXT', 'nullable': False},
                {'name': 'subject', 'type': 'TEXT'},
                {'name': 'message', 'type': 'TEXT', 'nullable': False},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'new'"},
                {'name': 'reply_message', 'type': 'TEXT'},
                {'name': 'replied_at', 'type': 'TIMESTAMP'},
                {'name': 'replied_by', 'type': 'UUID'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'indexes': [
                {'name': 'idx_contact_created', 'columns': ['created_at']}
            ]
        },
        {
            'name': 'product_reports',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'product_id', 'type': 'UUID', 'nullable': False},
                {'name': 'reporter_id', 'type': 'UUID', 'nullable': False},
                {'name': 'reason', 'type': 'TEXT', 'nullable': False},
                {'name': 'description', 'type': 'TEXT'},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'pending'"},
                {'name': 'admin_notes', 'type': 'TEXT'},
                {'name': 'reviewed_by', 'type': 'UUID'},
                {'name': 'reviewed_at', 'type': 'TIMESTAMP'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['product_id'], 'references': 'products(id)'},
                {'columns': ['reporter_id'], 'references': 'profiles(id)'}
            ],
            'indexes': [
                {'name': 'idx_reports_status', 'columns': ['status']},
                {'name': 'idx_reports_product', 'columns': ['product_id', 'reporter_id']}
            ]
        }
    ],
    'triggers': [
        {
            'name': f'trg_{table}_updated_at',
            'table': table,
            'timing': 'BEFORE',
            'event': 'UPDATE',
            'function_name': 'touch_updated_at',
            'function_body': '''
                BEGIN
                    NEW.updated_at = now();
                    RETURN NEW;
                END;
            '''
        }
        for table in ('profiles', 'products', 'product_variants', 'purchases')
    ]
}
