"""create chat schema

Revision ID: 5c1e9a7d2b40
Revises:
Create Date: 2026-10-18 09:12:04.118302

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5c1e9a7d2b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Step 1: Create the function (required before triggers)
    op.execute('''
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ language 'plpgsql'
    ''')

    # Step 2: Create tables
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(128) PRIMARY KEY,
            name VARCHAR(255) NOT NULL,
            avatar_url VARCHAR(1024) NOT NULL DEFAULT '',
            role VARCHAR(10) NOT NULL DEFAULT 'member' CHECK (role IN ('member', 'trainer')),
            last_seen TIMESTAMP WITH TIME ZONE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS chat_rooms (
            id VARCHAR(255) PRIMARY KEY,
            last_message TEXT NOT NULL DEFAULT '',
            last_message_sender_id VARCHAR(128),
            last_message_timestamp TIMESTAMP WITH TIME ZONE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS chat_participants (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            room_id VARCHAR(255) NOT NULL REFERENCES chat_rooms(id) ON DELETE CASCADE,
            user_id VARCHAR(128) NOT NULL REFERENCES users(id),
            name VARCHAR(255) NOT NULL,
            avatar_url VARCHAR(1024) NOT NULL DEFAULT '',
            role VARCHAR(10) NOT NULL DEFAULT 'member' CHECK (role IN ('member', 'trainer')),
            has_read BOOLEAN NOT NULL DEFAULT FALSE,
            deleted_at TIMESTAMP WITH TIME ZONE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            CONSTRAINT uq_chat_participant_room_user UNIQUE (room_id, user_id)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS chat_messages (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            room_id VARCHAR(255) NOT NULL REFERENCES chat_rooms(id) ON DELETE CASCADE,
            sender_id VARCHAR(128) NOT NULL,
            text TEXT NOT NULL,
            timestamp TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
            read_by JSON NOT NULL DEFAULT '[]'::json,
            is_deleted BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """)

    # Step 3: Create indexes
    op.execute('CREATE INDEX IF NOT EXISTS idx_chat_participants_user ON chat_participants(user_id)')
    op.execute('CREATE INDEX IF NOT EXISTS idx_chat_messages_room_timestamp ON chat_messages(room_id, timestamp)')

    # Step 4: Create triggers (only after tables exist)
    for table in ('users', 'chat_rooms', 'chat_messages'):
        op.execute(f'''
            CREATE TRIGGER update_{table}_updated_at
                BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION update_updated_at_column()
        ''')


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('chat_messages')
    op.drop_table('chat_participants')
    op.drop_table('chat_rooms')
    op.drop_table('users')
    op.execute(sa.text('DROP FUNCTION IF EXISTS update_updated_at_column()'))
