"""field booking schema

Revision ID: 3c1f9a2d7b40
Revises:
Create Date: 2025-06-01 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '3c1f9a2d7b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Early-morning times (before 05:00) belong to the next calendar day of the
# booking's service day; keep in sync with SERVICE_DAY_ROLLOVER.
SLOT_START = (
    "booking_date + start_time"
    " + CASE WHEN start_time < TIME '05:00' THEN INTERVAL '1 day' ELSE INTERVAL '0' END"
)
SLOT_END = (
    "booking_date + end_time"
    " + CASE WHEN end_time < TIME '05:00' THEN INTERVAL '1 day' ELSE INTERVAL '0' END"
)


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto;")
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist;")

    op.execute(
        f"""
        CREATE TABLE bookings (
          id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
          field_name text NOT NULL,
          customer_name text NOT NULL,
          phone text NOT NULL,
          booking_date date NOT NULL,
          start_time time NOT NULL,
          end_time time NOT NULL,
          status text NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'approved', 'rejected')),
          created_at timestamptz NOT NULL DEFAULT now(),
          reminder_sent boolean NOT NULL DEFAULT false,
          slot_range tsrange GENERATED ALWAYS AS (
            CASE WHEN ({SLOT_END}) > ({SLOT_START})
              THEN tsrange({SLOT_START}, {SLOT_END}, '[)')
              ELSE tsrange({SLOT_START}, ({SLOT_END}) + INTERVAL '1 day', '[)')
            END
          ) STORED,
          CONSTRAINT bookings_times_differ CHECK (start_time <> end_time),
          CONSTRAINT bookings_no_overlap EXCLUDE USING gist (
            field_name WITH =,
            slot_range WITH &&
          ) WHERE (status <> 'rejected')
        );
        """
    )
    op.execute("CREATE INDEX bookings_field_date_idx ON bookings (field_name, booking_date);")
    op.execute("CREATE INDEX bookings_status_idx ON bookings (status);")

    op.execute(
        """
        CREATE TABLE daily_exceptions (
          id bigserial PRIMARY KEY,
          field_name text NOT NULL,
          exception_date date NOT NULL,
          custom_slots jsonb NOT NULL DEFAULT '[]'::jsonb,
          notes text,
          created_at timestamptz NOT NULL DEFAULT now(),
          CONSTRAINT daily_exceptions_field_date_key UNIQUE (field_name, exception_date)
        );
        """
    )


def downgrade() -> None:
    op.drop_table("daily_exceptions", schema="public")
    op.drop_table("bookings", schema="public")
    op.execute("DROP EXTENSION IF EXISTS btree_gist;")
    op.execute("DROP EXTENSION IF EXISTS pgcrypto;")
