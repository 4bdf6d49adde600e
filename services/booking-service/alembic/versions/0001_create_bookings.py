from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "amenities",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("max_capacity", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )

    op.create_table(
        "booking_rules",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("max_per_family", sa.Integer(), nullable=False),
        sa.Column("max_advance_booking_days", sa.Integer(), nullable=False),
        sa.Column("min_booking_duration", sa.Integer(), nullable=False),
        sa.Column("max_booking_duration", sa.Integer(), nullable=False),
        sa.Column("cancellation_deadline_hours", sa.Integer(), nullable=False),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("booking_id", sa.String(), nullable=False),
        sa.Column("facility_id", sa.String(), nullable=False),
        sa.Column("facility_name", sa.String(), nullable=False),
        sa.Column("date", sa.String(length=10), nullable=False),
        sa.Column("time_slot", sa.String(), nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("user_email", sa.String(), nullable=False),
        sa.Column("user_name", sa.String(), nullable=False),
        sa.Column("waitlist", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_bookings_booking_id", "bookings", ["booking_id"], unique=True)
    op.create_index("ix_bookings_status", "bookings", ["status"], unique=False)
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"], unique=False)
    op.create_index("ix_bookings_date_facility", "bookings", ["date", "facility_id"], unique=False)
    op.create_index("ix_bookings_date_user", "bookings", ["date", "user_id"], unique=False)
    op.create_index(
        "uq_bookings_confirmed_slot",
        "bookings",
        ["facility_id", "date", "time_slot"],
        unique=True,
        postgresql_where=sa.text("status = 'confirmed'"),
    )

def downgrade():
    op.drop_index("uq_bookings_confirmed_slot", table_name="bookings")
    op.drop_index("ix_bookings_date_user", table_name="bookings")
    op.drop_index("ix_bookings_date_facility", table_name="bookings")
    op.drop_index("ix_bookings_user_id", table_name="bookings")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_booking_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("booking_rules")
    op.drop_table("amenities")
