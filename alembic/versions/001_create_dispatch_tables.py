from alembic import op

revision = "001_dispatch_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.execute("""
        CREATE TABLE IF NOT EXISTS drivers (
            id SERIAL PRIMARY KEY,
            owner_id VARCHAR(64) NOT NULL,
            driver_name TEXT NOT NULL,
            driver_type VARCHAR(20) NOT NULL DEFAULT 'company_driver'
                CONSTRAINT ck_drivers_driver_type CHECK (driver_type IN ('company_driver', 'owner_operator')),
            status VARCHAR(10) NOT NULL DEFAULT 'active'
                CONSTRAINT ck_drivers_status CHECK (status IN ('active', 'inactive')),
            truck_number VARCHAR(20),
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW()
        );

        CREATE INDEX IF NOT EXISTS idx_drivers_owner_id ON drivers(owner_id);
        CREATE INDEX IF NOT EXISTS idx_drivers_truck_number ON drivers(truck_number);

        CREATE TABLE IF NOT EXISTS loads (
            id SERIAL PRIMARY KEY,
            owner_id VARCHAR(64) NOT NULL,
            ref_id VARCHAR(64) NOT NULL,
            driver_id INTEGER NOT NULL REFERENCES drivers(id) ON DELETE CASCADE,
            pickup_date DATE NOT NULL,
            delivery_date DATE NOT NULL,
            origin TEXT NOT NULL,
            destination TEXT NOT NULL,
            rate NUMERIC(10,2) NOT NULL,
            load_type VARCHAR(10) NOT NULL
                CONSTRAINT ck_loads_load_type CHECK (load_type IN ('FULL', 'PARTIAL')),
            connected_full_load_id INTEGER REFERENCES loads(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_loads_owner_ref UNIQUE (owner_id, ref_id)
        );

        CREATE INDEX IF NOT EXISTS idx_loads_owner_id ON loads(owner_id);
        CREATE INDEX IF NOT EXISTS idx_loads_driver_id ON loads(driver_id);
        CREATE INDEX IF NOT EXISTS idx_loads_delivery_date ON loads(delivery_date);
        CREATE INDEX IF NOT EXISTS idx_loads_connected_full_load_id ON loads(connected_full_load_id);

        CREATE TABLE IF NOT EXISTS bonuses (
            id SERIAL PRIMARY KEY,
            owner_id VARCHAR(64) NOT NULL,
            driver_id INTEGER REFERENCES drivers(id) ON DELETE CASCADE,
            bonus_type VARCHAR(10) NOT NULL
                CONSTRAINT ck_bonuses_bonus_type CHECK (bonus_type IN ('automatic', 'manual')),
            amount NUMERIC(10,2) NOT NULL,
            week_start DATE NOT NULL,
            payout_date DATE NOT NULL,
            note TEXT,
            created_at TIMESTAMPTZ DEFAULT NOW()
        );

        CREATE INDEX IF NOT EXISTS idx_bonuses_owner_type ON bonuses(owner_id, bonus_type);
        CREATE INDEX IF NOT EXISTS idx_bonuses_payout_date ON bonuses(payout_date);

        CREATE TABLE IF NOT EXISTS prebook_notes (
            id SERIAL PRIMARY KEY,
            owner_id VARCHAR(64) NOT NULL,
            note_date DATE NOT NULL,
            note TEXT NOT NULL,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_prebook_notes_owner_date UNIQUE (owner_id, note_date)
        );
    """)


def downgrade():
    op.execute("""
        DROP TABLE IF EXISTS prebook_notes CASCADE;
        DROP TABLE IF EXISTS bonuses CASCADE;
        DROP TABLE IF EXISTS loads CASCADE;
        DROP TABLE IF EXISTS drivers CASCADE;
    """)
