"""initial_election_schema

Revision ID: 3f6c2a9d1b7e
Revises:
Create Date: 2025-08-04 10:12:44.218031

"""
from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3f6c2a9d1b7e'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute("""
-- Enable UUID extension
CREATE EXTENSION IF NOT EXISTS "uuid-ossp";

-- Zone registry
CREATE TABLE IF NOT EXISTS zones (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    code VARCHAR(50) NOT NULL,
    name VARCHAR(255) NOT NULL,
    name_local VARCHAR(255),
    description TEXT,
    seats INTEGER NOT NULL CHECK (seats >= 1),
    election_type VARCHAR(20) NOT NULL
        CHECK (election_type IN ('yuva_pankh', 'karobari', 'trustee')),
    is_frozen BOOLEAN NOT NULL DEFAULT FALSE,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (code, election_type)
);

CREATE INDEX IF NOT EXISTS idx_zones_election_type ON zones(election_type);

-- Voter roll
CREATE TABLE IF NOT EXISTS voters (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    voter_id VARCHAR(50) UNIQUE NOT NULL,
    name VARCHAR(255) NOT NULL,
    phone VARCHAR(20),
    email VARCHAR(255),
    dob VARCHAR(10),
    age INTEGER,
    region VARCHAR(100) NOT NULL,
    yuva_pankh_zone_id UUID REFERENCES zones(id),
    karobari_zone_id UUID REFERENCES zones(id),
    trustee_zone_id UUID REFERENCES zones(id),
    has_voted_yuva_pankh BOOLEAN NOT NULL DEFAULT FALSE,
    has_voted_karobari BOOLEAN NOT NULL DEFAULT FALSE,
    has_voted_trustee BOOLEAN NOT NULL DEFAULT FALSE,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    CONSTRAINT voters_contact_required CHECK (phone IS NOT NULL OR email IS NOT NULL)
);

CREATE INDEX IF NOT EXISTS idx_voters_phone ON voters(phone);
CREATE INDEX IF NOT EXISTS idx_voters_email ON voters(email);
CREATE INDEX IF NOT EXISTS idx_voters_yuva_pankh_zone ON voters(yuva_pankh_zone_id);
CREATE INDEX IF NOT EXISTS idx_voters_karobari_zone ON voters(karobari_zone_id);
CREATE INDEX IF NOT EXISTS idx_voters_trustee_zone ON voters(trustee_zone_id);

-- Has-voted flags only ever go from FALSE to TRUE
CREATE OR REPLACE FUNCTION voters_has_voted_monotonic() RETURNS trigger AS $$
BEGIN
    IF (OLD.has_voted_yuva_pankh AND NOT NEW.has_voted_yuva_pankh)
        OR (OLD.has_voted_karobari AND NOT NEW.has_voted_karobari)
        OR (OLD.has_voted_trustee AND NOT NEW.has_voted_trustee) THEN
        RAISE EXCEPTION 'has_voted flags cannot be reset';
    END IF;
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS trg_voters_has_voted_monotonic ON voters;
CREATE TRIGGER trg_voters_has_voted_monotonic
    BEFORE UPDATE ON voters
    FOR EACH ROW EXECUTE FUNCTION voters_has_voted_monotonic();

-- Administrators
CREATE TABLE IF NOT EXISTS admins (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    username VARCHAR(50) UNIQUE NOT NULL,
    email VARCHAR(255),
    password_hash TEXT NOT NULL,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    last_login TIMESTAMP WITH TIME ZONE,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
);

-- Candidates
CREATE TABLE IF NOT EXISTS candidates (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    name VARCHAR(255) NOT NULL,
    email VARCHAR(255),
    phone VARCHAR(20),
    region VARCHAR(100),
    election_type VARCHAR(20) NOT NULL
        CHECK (election_type IN ('yuva_pankh', 'karobari', 'trustee')),
    zone_id UUID NOT NULL REFERENCES zones(id),
    position VARCHAR(100),
    status VARCHAR(20) NOT NULL DEFAULT 'PENDING'
        CHECK (status IN ('PENDING', 'SUBMITTED', 'APPROVED', 'REJECTED')),
    experience JSONB,
    education JSONB,
    rejection_reason TEXT,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_candidates_zone_status ON candidates(zone_id, status);

-- Nominations
CREATE TABLE IF NOT EXISTS nominations (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    candidate_id UUID NOT NULL REFERENCES candidates(id) ON DELETE CASCADE,
    status VARCHAR(20) NOT NULL DEFAULT 'PENDING'
        CHECK (status IN ('PENDING', 'SUBMITTED', 'APPROVED', 'REJECTED')),
    rejection_reason TEXT,
    submitted_at TIMESTAMP WITH TIME ZONE,
    reviewed_at TIMESTAMP WITH TIME ZONE,
    reviewed_by UUID REFERENCES admins(id),
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    CONSTRAINT nominations_rejection_reason CHECK (
        status <> 'REJECTED' OR (rejection_reason IS NOT NULL AND length(trim(rejection_reason)) > 0)
    )
);

CREATE INDEX IF NOT EXISTS idx_nominations_status ON nominations(status);
CREATE INDEX IF NOT EXISTS idx_nominations_candidate ON nominations(candidate_id);

CREATE TABLE IF NOT EXISTS nomination_documents (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    nomination_id UUID NOT NULL REFERENCES nominations(id) ON DELETE CASCADE,
    document_type VARCHAR(50) NOT NULL,
    storage_key TEXT NOT NULL,
    content_type VARCHAR(100) NOT NULL
        CHECK (content_type IN ('application/pdf', 'image/jpeg', 'image/png')),
    file_name VARCHAR(255) NOT NULL,
    uploaded_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_nomination_documents_nomination ON nomination_documents(nomination_id);

-- Ballot lines (one per seat; NOTA lines carry no candidate)
CREATE TABLE IF NOT EXISTS votes (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    voter_id UUID NOT NULL REFERENCES voters(id),
    zone_id UUID NOT NULL REFERENCES zones(id),
    election_type VARCHAR(20) NOT NULL
        CHECK (election_type IN ('yuva_pankh', 'karobari', 'trustee')),
    candidate_id UUID REFERENCES candidates(id),
    is_nota BOOLEAN NOT NULL DEFAULT FALSE,
    seat_index INTEGER NOT NULL CHECK (seat_index >= 0),
    ip_address VARCHAR(45),
    user_agent TEXT,
    voted_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    CONSTRAINT votes_target CHECK (is_nota = (candidate_id IS NULL)),
    UNIQUE (voter_id, election_type, seat_index)
);

CREATE INDEX IF NOT EXISTS idx_votes_zone ON votes(zone_id);
CREATE INDEX IF NOT EXISTS idx_votes_candidate ON votes(candidate_id);
CREATE INDEX IF NOT EXISTS idx_votes_election_type ON votes(election_type);

-- Login codes
CREATE TABLE IF NOT EXISTS otp_tokens (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    voter_id UUID NOT NULL REFERENCES voters(id) ON DELETE CASCADE,
    channel VARCHAR(10) NOT NULL CHECK (channel IN ('sms', 'email')),
    token_hash VARCHAR(64) NOT NULL,
    expires_at TIMESTAMP WITH TIME ZONE NOT NULL,
    attempts INTEGER NOT NULL DEFAULT 0,
    used BOOLEAN NOT NULL DEFAULT FALSE,
    used_at TIMESTAMP WITH TIME ZONE,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_otp_tokens_voter ON otp_tokens(voter_id, used);

-- Audit trail
CREATE TABLE IF NOT EXISTS election_audit_log (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    actor_type VARCHAR(20) NOT NULL CHECK (actor_type IN ('voter', 'admin', 'system')),
    actor_id UUID,
    action_type VARCHAR(50) NOT NULL,
    resource_type VARCHAR(50),
    resource_id UUID,
    severity VARCHAR(20) NOT NULL DEFAULT 'info',
    ip_address VARCHAR(45),
    user_agent TEXT,
    details JSONB NOT NULL DEFAULT '{}'::jsonb,
    timestamp TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_election_audit_log_action ON election_audit_log(action_type);
CREATE INDEX IF NOT EXISTS idx_election_audit_log_timestamp ON election_audit_log(timestamp);

COMMENT ON TABLE zones IS 'Electoral zones with seat counts, one election type each';
COMMENT ON TABLE voters IS 'Voter roll with per-election zone assignment and has-voted flags';
COMMENT ON TABLE votes IS 'Ballot lines; exactly seats rows per submitted ballot';
COMMENT ON COLUMN votes.is_nota IS 'None Of The Above line; counts toward turnout, not toward a candidate';
    """)


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("""
    DROP TABLE IF EXISTS election_audit_log CASCADE;
    DROP TABLE IF EXISTS otp_tokens CASCADE;
    DROP TABLE IF EXISTS votes CASCADE;
    DROP TABLE IF EXISTS nomination_documents CASCADE;
    DROP TABLE IF EXISTS nominations CASCADE;
    DROP TABLE IF EXISTS candidates CASCADE;
    DROP TABLE IF EXISTS admins CASCADE;
    DROP TRIGGER IF EXISTS trg_voters_has_voted_monotonic ON voters;
    DROP FUNCTION IF EXISTS voters_has_voted_monotonic();
    DROP TABLE IF EXISTS voters CASCADE;
    DROP TABLE IF EXISTS zones CASCADE;
    """)
