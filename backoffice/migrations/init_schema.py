"""Database schema initialization.

Contains all CREATE TABLE, CREATE INDEX statements and seed data for the
back-office database.

Called by database.init_db() at application start-up.
"""
import json


def create_schema(conn, cursor):
    """Create all database tables, indexes, and seed data.

    Args:
        conn: Database connection (for commit/rollback)
        cursor: Database cursor from get_cursor(conn)
    """
    cursor.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto')

    _create_auth_tables(cursor)
    _create_commission_tables(cursor)
    _create_timeclock_tables(cursor)
    _create_signing_tables(cursor)
    _seed(cursor)

    conn.commit()


# ============== Auth ==============

def _create_auth_tables(cursor):
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS roles (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            description TEXT,
            can_access_commissions BOOLEAN DEFAULT FALSE,
            can_access_timeclock_admin BOOLEAN DEFAULT FALSE,
            can_access_signing BOOLEAN DEFAULT FALSE,
            can_access_settings BOOLEAN DEFAULT FALSE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS users (
            id SERIAL PRIMARY KEY,
            email TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            password_hash TEXT,
            role_id INTEGER REFERENCES roles(id),
            is_active BOOLEAN DEFAULT TRUE,
            last_login TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    ''')


# ============== Commissions ==============

def _create_commission_tables(cursor):
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS phorest_commission_cache (
            id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
            date_range_key TEXT NOT NULL UNIQUE,
            results JSONB NOT NULL,
            fetched_at TIMESTAMPTZ DEFAULT NOW(),
            expires_at TIMESTAMPTZ NOT NULL
        )
    ''')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_commission_cache_expires ON phorest_commission_cache(expires_at)')


# ============== Time Clock ==============

def _create_timeclock_tables(cursor):
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS tc_employees (
            id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
            employee_number TEXT UNIQUE NOT NULL,
            first_name TEXT NOT NULL,
            last_name TEXT NOT NULL,
            is_active BOOLEAN DEFAULT TRUE NOT NULL,
            created_at TIMESTAMPTZ DEFAULT NOW() NOT NULL
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS tc_jobs (
            id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
            name TEXT NOT NULL,
            is_active BOOLEAN DEFAULT TRUE NOT NULL,
            created_at TIMESTAMPTZ DEFAULT NOW() NOT NULL
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS tc_time_entries (
            id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
            employee_id UUID NOT NULL REFERENCES tc_employees(id) ON DELETE CASCADE,
            job_id UUID REFERENCES tc_jobs(id),
            clock_in TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            clock_out TIMESTAMPTZ,
            notes TEXT DEFAULT '',
            created_at TIMESTAMPTZ DEFAULT NOW() NOT NULL
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS tc_settings (
            id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
            setting_key TEXT UNIQUE NOT NULL,
            setting_value JSONB NOT NULL DEFAULT '{}',
            updated_at TIMESTAMPTZ DEFAULT NOW() NOT NULL
        )
    ''')

    cursor.execute('CREATE INDEX IF NOT EXISTS idx_tc_time_entries_employee_id ON tc_time_entries(employee_id)')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_tc_time_entries_clock_in ON tc_time_entries(clock_in)')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_tc_time_entries_open ON tc_time_entries(employee_id) WHERE clock_out IS NULL')


# ============== Signed-to-Sealed ==============

def _create_signing_tables(cursor):
    cursor.execute('''
        CREATE TABLE IF NOT EXISTS sts_envelopes (
            id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
            title TEXT NOT NULL DEFAULT '',
            message TEXT DEFAULT '',
            status TEXT NOT NULL DEFAULT 'draft'
                CHECK (status IN ('draft', 'sent', 'in_progress', 'completed', 'voided')),
            created_by TEXT DEFAULT '',
            sent_at TIMESTAMPTZ,
            completed_at TIMESTAMPTZ,
            voided_at TIMESTAMPTZ,
            void_reason TEXT,
            created_at TIMESTAMPTZ DEFAULT NOW() NOT NULL,
            updated_at TIMESTAMPTZ DEFAULT NOW() NOT NULL
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS sts_documents (
            id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
            envelope_id UUID NOT NULL REFERENCES sts_envelopes(id) ON DELETE CASCADE,
            file_name TEXT NOT NULL,
            file_path TEXT NOT NULL,
            file_size INTEGER DEFAULT 0,
            file_hash VARCHAR(64),
            page_count INTEGER DEFAULT 1,
            sort_order INTEGER DEFAULT 0,
            created_at TIMESTAMPTZ DEFAULT NOW() NOT NULL
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS sts_recipients (
            id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
            envelope_id UUID NOT NULL REFERENCES sts_envelopes(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            email TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'signer' CHECK (role IN ('signer', 'cc', 'in_person')),
            signing_order INTEGER DEFAULT 1,
            status TEXT NOT NULL DEFAULT 'pending'
                CHECK (status IN ('pending', 'viewed', 'signed', 'declined')),
            color_hex TEXT NOT NULL DEFAULT '#3b82f6',
            access_token UUID DEFAULT gen_random_uuid() UNIQUE,
            viewed_at TIMESTAMPTZ,
            signed_at TIMESTAMPTZ,
            decline_reason TEXT,
            created_at TIMESTAMPTZ DEFAULT NOW() NOT NULL,
            updated_at TIMESTAMPTZ DEFAULT NOW() NOT NULL
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS sts_fields (
            id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
            envelope_id UUID NOT NULL REFERENCES sts_envelopes(id) ON DELETE CASCADE,
            document_id UUID NOT NULL REFERENCES sts_documents(id) ON DELETE CASCADE,
            recipient_id UUID NOT NULL REFERENCES sts_recipients(id) ON DELETE CASCADE,
            field_type TEXT NOT NULL DEFAULT 'signature'
                CHECK (field_type IN ('signature', 'initials', 'date_signed', 'text', 'checkbox', 'dropdown')),
            page_number INTEGER NOT NULL DEFAULT 1,
            x_position NUMERIC NOT NULL DEFAULT 0,
            y_position NUMERIC NOT NULL DEFAULT 0,
            width NUMERIC NOT NULL DEFAULT 20,
            height NUMERIC NOT NULL DEFAULT 5,
            is_required BOOLEAN DEFAULT TRUE,
            dropdown_options JSONB DEFAULT '[]',
            field_value TEXT,
            created_at TIMESTAMPTZ DEFAULT NOW() NOT NULL
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS sts_signatures (
            id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
            name TEXT NOT NULL DEFAULT '',
            type TEXT NOT NULL DEFAULT 'signature' CHECK (type IN ('signature', 'initials')),
            method TEXT NOT NULL DEFAULT 'draw' CHECK (method IN ('draw', 'type', 'upload')),
            data_url TEXT NOT NULL,
            font_family TEXT,
            is_default BOOLEAN DEFAULT FALSE,
            created_at TIMESTAMPTZ DEFAULT NOW() NOT NULL
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS sts_audit_log (
            id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
            envelope_id UUID NOT NULL REFERENCES sts_envelopes(id) ON DELETE CASCADE,
            event_type TEXT NOT NULL,
            actor_name TEXT DEFAULT '',
            actor_email TEXT DEFAULT '',
            recipient_id UUID REFERENCES sts_recipients(id) ON DELETE SET NULL,
            metadata JSONB DEFAULT '{}',
            ip_address TEXT,
            created_at TIMESTAMPTZ DEFAULT NOW() NOT NULL
        )
    ''')

    cursor.execute('''
        CREATE TABLE IF NOT EXISTS sts_templates (
            id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT DEFAULT '',
            envelope_config JSONB NOT NULL DEFAULT '{}',
            created_at TIMESTAMPTZ DEFAULT NOW() NOT NULL,
            updated_at TIMESTAMPTZ DEFAULT NOW() NOT NULL
        )
    ''')

    cursor.execute('CREATE INDEX IF NOT EXISTS idx_sts_documents_envelope ON sts_documents(envelope_id)')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_sts_recipients_envelope ON sts_recipients(envelope_id)')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_sts_fields_envelope ON sts_fields(envelope_id)')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_sts_fields_recipient ON sts_fields(recipient_id)')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_sts_audit_envelope ON sts_audit_log(envelope_id, created_at)')
    cursor.execute('CREATE INDEX IF NOT EXISTS idx_sts_envelopes_status ON sts_envelopes(status)')


# ============== Seed data ==============

DEFAULT_OVERTIME = {'daily_threshold': 8, 'weekly_threshold': 40}
DEFAULT_LOCATION = {'name': 'R Alexander Barn', 'lat': None, 'lng': None, 'radius_meters': None}


def _seed(cursor):
    cursor.execute('''
        INSERT INTO roles (name, description, can_access_commissions, can_access_timeclock_admin,
                           can_access_signing, can_access_settings)
        VALUES
            ('Admin', 'Full access to all apps', TRUE, TRUE, TRUE, TRUE),
            ('Manager', 'Commissions, time clock and signing', TRUE, TRUE, TRUE, FALSE),
            ('Front Desk', 'Document signing only', FALSE, FALSE, TRUE, FALSE)
        ON CONFLICT (name) DO NOTHING
    ''')

    cursor.execute('''
        INSERT INTO tc_settings (setting_key, setting_value)
        VALUES ('overtime', %s), ('location', %s)
        ON CONFLICT (setting_key) DO NOTHING
    ''', (json.dumps(DEFAULT_OVERTIME), json.dumps(DEFAULT_LOCATION)))
