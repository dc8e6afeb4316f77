"""nomination_ownership_and_withdrawal

Revision ID: 8b1d4e7c2a95
Revises: 3f6c2a9d1b7e
Create Date: 2025-08-19 16:40:02.571904

"""
from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '8b1d4e7c2a95'
down_revision: str | Sequence[str] | None = '3f6c2a9d1b7e'
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute("""
-- The voter who filed the nomination
ALTER TABLE nominations ADD COLUMN IF NOT EXISTS owner_voter_id UUID REFERENCES voters(id);
ALTER TABLE nominations ADD COLUMN IF NOT EXISTS withdrawal_reason TEXT;
ALTER TABLE nominations ADD COLUMN IF NOT EXISTS withdrawn_at TIMESTAMP WITH TIME ZONE;

CREATE INDEX IF NOT EXISTS idx_nominations_owner ON nominations(owner_voter_id);

-- Candidates may withdraw before a decision
ALTER TABLE candidates DROP CONSTRAINT IF EXISTS candidates_status_check;
ALTER TABLE candidates ADD CONSTRAINT candidates_status_check
    CHECK (status IN ('PENDING', 'SUBMITTED', 'APPROVED', 'REJECTED', 'WITHDRAWN'));

ALTER TABLE nominations DROP CONSTRAINT IF EXISTS nominations_status_check;
ALTER TABLE nominations ADD CONSTRAINT nominations_status_check
    CHECK (status IN ('PENDING', 'SUBMITTED', 'APPROVED', 'REJECTED', 'WITHDRAWN'));
    """)


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("""
    UPDATE nominations SET status = 'PENDING' WHERE status = 'WITHDRAWN';
    UPDATE candidates SET status = 'PENDING' WHERE status = 'WITHDRAWN';

    ALTER TABLE nominations DROP CONSTRAINT IF EXISTS nominations_status_check;
    ALTER TABLE nominations ADD CONSTRAINT nominations_status_check
        CHECK (status IN ('PENDING', 'SUBMITTED', 'APPROVED', 'REJECTED'));
    ALTER TABLE candidates DROP CONSTRAINT IF EXISTS candidates_status_check;
    ALTER TABLE candidates ADD CONSTRAINT candidates_status_check
        CHECK (status IN ('PENDING', 'SUBMITTED', 'APPROVED', 'REJECTED'));

    DROP INDEX IF EXISTS idx_nominations_owner;
    ALTER TABLE nominations DROP COLUMN IF EXISTS withdrawn_at;
    ALTER TABLE nominations DROP COLUMN IF EXISTS withdrawal_reason;
    ALTER TABLE nominations DROP COLUMN IF EXISTS owner_voter_id;
    """)
