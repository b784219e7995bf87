"""Initial schema: venue reference data, bookings and seats, rods, catches, stats.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Users (owned by the identity service, read here)
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Venue reference data
    op.create_table(
        "ponds",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("max_capacity", sa.Integer(), nullable=False),
        sa.Column("booking_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("max_capacity > 0", name="check_pond_capacity_positive"),
    )
    op.create_index("ix_ponds_id", "ponds", ["id"])

    op.create_table(
        "time_slots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("label", sa.String(50), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
    )
    op.create_index("ix_time_slots_id", "time_slots", ["id"])

    # One counter row per (pond, date, slot); the contention unit for pond bookings
    op.create_table(
        "pond_slot_inventory",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("pond_id", sa.Integer(), sa.ForeignKey("ponds.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time_slot_id", sa.Integer(), sa.ForeignKey("time_slots.id"), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("reserved_seats", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.UniqueConstraint("pond_id", "date", "time_slot_id", name="uq_pond_slot_inventory_unit"),
        sa.CheckConstraint("reserved_seats >= 0", name="check_inventory_reserved_non_negative"),
        sa.CheckConstraint("reserved_seats <= capacity", name="check_inventory_reserved_lte_capacity"),
    )

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False),
        sa.Column("booked_seats", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("pond_id", sa.Integer(), sa.ForeignKey("ponds.id"), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="open"),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("max_participants > 0", name="check_event_max_participants_positive"),
        sa.CheckConstraint("booked_seats >= 0", name="check_event_booked_non_negative"),
        sa.CheckConstraint("booked_seats <= max_participants", name="check_event_booked_lte_max"),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_date", "events", ["date"])

    op.create_table(
        "games",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="heaviest"),
        sa.Column("measurement_unit", sa.String(10), nullable=False, server_default="kg"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_games_id", "games", ["id"])

    op.create_table(
        "event_games",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("game_id", sa.Integer(), sa.ForeignKey("games.id"), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.UniqueConstraint("event_id", "game_id", name="uq_event_game"),
    )
    op.create_index("ix_event_games_event_id", "event_games", ["event_id"])

    # Bookings and seats
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_ref", sa.String(40), nullable=False),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("booked_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("pond_id", sa.Integer(), sa.ForeignKey("ponds.id"), nullable=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=True),
        sa.Column("time_slot_id", sa.Integer(), sa.ForeignKey("time_slots.id"), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("seat_count", sa.Integer(), nullable=False),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        *_timestamps(),
        sa.CheckConstraint("seat_count > 0", name="check_booking_seat_count_positive"),
        sa.CheckConstraint("type IN ('POND', 'EVENT')", name="check_booking_type"),
        sa.CheckConstraint("status IN ('active', 'cancelled', 'no-show')", name="check_booking_status"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_booking_ref", "bookings", ["booking_ref"], unique=True)
    op.create_index("ix_bookings_booked_by_user_id", "bookings", ["booked_by_user_id"])
    op.create_index("ix_bookings_pond_id", "bookings", ["pond_id"])
    op.create_index("ix_bookings_event_id", "bookings", ["event_id"])
    op.create_index("ix_bookings_pond_date_slot", "bookings", ["pond_id", "date", "time_slot_id"])

    op.create_table(
        "booking_seats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("seat_number", sa.Integer(), nullable=False),
        sa.Column("qr_code", sa.String(120), nullable=False),
        sa.Column("assigned_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="unassigned"),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("shared_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("shared_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("booking_id", "seat_number", name="uq_booking_seat_number"),
        sa.CheckConstraint("seat_number > 0", name="check_seat_number_positive"),
    )
    op.create_index("ix_booking_seats_id", "booking_seats", ["id"])
    op.create_index("ix_booking_seats_booking_id", "booking_seats", ["booking_id"])
    # Seat QR codes are printed on badges and must never collide
    op.create_index("ix_booking_seats_qr_code", "booking_seats", ["qr_code"], unique=True)
    op.create_index("ix_booking_seats_assigned_user_id", "booking_seats", ["assigned_user_id"])

    op.create_table(
        "check_in_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("booking_seat_id", sa.Integer(), sa.ForeignKey("booking_seats.id"), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("scanned_by", sa.String(150), nullable=False, server_default="system"),
        sa.Column("station_id", sa.String(50), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="checked-in"),
        sa.Column("check_in_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("check_out_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_check_in_records_id", "check_in_records", ["id"])
    op.create_index("ix_check_in_records_booking_id", "check_in_records", ["booking_id"])
    op.create_index("ix_check_in_records_booking_seat_id", "check_in_records", ["booking_seat_id"])
    op.create_index("ix_check_in_records_user_id", "check_in_records", ["user_id"])

    # Rods: version history per seat, at most one active
    op.create_table(
        "fishing_rods",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("qr_code", sa.String(120), nullable=False),
        sa.Column("booking_seat_id", sa.Integer(), sa.ForeignKey("booking_seats.id"), nullable=False),
        sa.Column("assigned_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("printed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("print_station_id", sa.String(50), nullable=True),
        sa.Column("voided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("void_reason", sa.String(255), nullable=True),
        sa.Column("previous_rod_id", sa.Integer(), sa.ForeignKey("fishing_rods.id"), nullable=True),
        sa.Column("previous_qr_code", sa.String(120), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("booking_seat_id", "version", name="uq_rod_seat_version"),
        sa.CheckConstraint("version > 0", name="check_rod_version_positive"),
        sa.CheckConstraint("status IN ('active', 'voided')", name="check_rod_status"),
    )
    op.create_index("ix_fishing_rods_id", "fishing_rods", ["id"])
    op.create_index("ix_fishing_rods_qr_code", "fishing_rods", ["qr_code"], unique=True)
    op.create_index("ix_fishing_rods_booking_seat_id", "fishing_rods", ["booking_seat_id"])
    op.create_index("ix_fishing_rods_assigned_user_id", "fishing_rods", ["assigned_user_id"])
    op.create_index(
        "uq_rod_active_per_seat",
        "fishing_rods",
        ["booking_seat_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )

    # Catches (append-only)
    op.create_table(
        "catch_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("booking_seat_id", sa.Integer(), sa.ForeignKey("booking_seats.id"), nullable=False),
        sa.Column("rod_qr_code", sa.String(120), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=True),
        sa.Column("game_id", sa.Integer(), sa.ForeignKey("games.id"), nullable=True),
        sa.Column("weight", sa.Numeric(10, 3), nullable=False),
        sa.Column("length", sa.Numeric(6, 1), nullable=True),
        sa.Column("species", sa.String(100), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("recorded_by", sa.String(150), nullable=False, server_default="system"),
        sa.Column("scale_id", sa.String(50), nullable=True),
        sa.Column("notes", sa.String(500), nullable=True),
        sa.Column("weighed_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("weight > 0", name="check_catch_weight_positive"),
    )
    op.create_index("ix_catch_records_id", "catch_records", ["id"])
    op.create_index("ix_catch_records_user_id", "catch_records", ["user_id"])
    op.create_index("ix_catch_records_rod_qr_code", "catch_records", ["rod_qr_code"])
    # Leaderboards and live ranking read catches by event and game
    op.create_index("ix_catch_records_event_game", "catch_records", ["event_id", "game_id"])

    # Stats and achievements
    op.create_table(
        "user_stats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("total_catches", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_weight", sa.Numeric(12, 3), nullable=False, server_default=sa.text("0")),
        sa.Column("biggest_catch", sa.Numeric(10, 3), nullable=False, server_default=sa.text("0")),
        sa.Column("events_joined", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_catch_date", sa.Date(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "achievements",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(50), nullable=False, unique=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(255), nullable=False, server_default=""),
        sa.Column("category", sa.String(30), nullable=False, server_default="catch"),
        sa.Column("metric", sa.String(30), nullable=False),
        sa.Column("threshold", sa.Numeric(12, 3), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )

    op.create_table(
        "user_achievements",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("achievement_id", sa.Integer(), sa.ForeignKey("achievements.id"), nullable=False),
        sa.Column("unlocked_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),
    )
    op.create_index("ix_user_achievements_user_id", "user_achievements", ["user_id"])


def downgrade() -> None:
    op.drop_table("user_achievements")
    op.drop_table("achievements")
    op.drop_table("user_stats")
    op.drop_table("catch_records")
    op.drop_table("fishing_rods")
    op.drop_table("check_in_records")
    op.drop_table("booking_seats")
    op.drop_table("bookings")
    op.drop_table("event_games")
    op.drop_table("games")
    op.drop_table("events")
    op.drop_table("pond_slot_inventory")
    op.drop_table("time_slots")
    op.drop_table("ponds")
    op.drop_table("users")
