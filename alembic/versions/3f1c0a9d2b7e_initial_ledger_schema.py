"""initial ledger schema

Revision ID: 3f1c0a9d2b7e
Revises:
Create Date: 2026-10-19 09:12:44.210387

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c0a9d2b7e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(*names: str) -> list:
    return [sa.Column(n, sa.DateTime(), nullable=False, server_default=sa.text("now()")) for n in names]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "inventory_items",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("unit", sa.String(), nullable=False),
        sa.Column("current_stock", sa.Numeric(12, 3), nullable=False, server_default="0"),
        sa.Column("minimum_threshold", sa.Numeric(12, 3), nullable=False, server_default="5"),
        sa.Column("average_daily_usage", sa.Numeric(12, 3), nullable=False, server_default="0"),
        *_timestamps("created_at", "updated_at"),
        sa.CheckConstraint("minimum_threshold >= 0", name="ck_inventory_items_minimum_threshold_nonnegative"),
    )
    op.create_index("ix_inventory_items_id", "inventory_items", ["id"], unique=False)

    op.create_table(
        "remittances",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("amount_inr", sa.Numeric(14, 2), nullable=False),
        sa.Column("rubal_rate", sa.Numeric(12, 6), nullable=False),
        sa.Column("amount_rub", sa.Numeric(14, 2), nullable=False),
        sa.Column("sent_to", sa.String(), nullable=False),
        sa.Column("purpose", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="sent"),
        sa.Column("proof_image_url", sa.Text(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("date", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("confirmed_at", sa.DateTime(), nullable=True),
        *_timestamps("created_at", "updated_at"),
        sa.CheckConstraint("amount_inr > 0", name="ck_remittances_amount_inr_positive"),
        sa.CheckConstraint("rubal_rate > 0", name="ck_remittances_rubal_rate_positive"),
        sa.CheckConstraint(
            "purpose IN ('Groceries', 'Salary', 'Advance', 'Emergency')",
            name="ck_remittances_purpose_allowed",
        ),
        sa.CheckConstraint("status IN ('sent', 'confirmed')", name="ck_remittances_status_allowed"),
    )
    op.create_index("ix_remittances_id", "remittances", ["id"], unique=False)
    op.create_index("ix_remittances_purpose", "remittances", ["purpose"], unique=False)
    op.create_index("ix_remittances_status", "remittances", ["status"], unique=False)
    op.create_index("ix_remittances_date", "remittances", ["date"], unique=False)

    op.create_table(
        "inventory_purchases",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("remittance_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 3), nullable=False),
        sa.Column("price_rub", sa.Numeric(14, 2), nullable=False),
        sa.Column("invoice_image", sa.Text(), nullable=False),
        sa.Column("purchased_by", sa.String(), nullable=False),
        sa.Column("date", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        *_timestamps("created_at", "updated_at"),
        sa.ForeignKeyConstraint(["item_id"], ["inventory_items.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["remittance_id"], ["remittances.id"], ondelete="RESTRICT"),
        sa.CheckConstraint("quantity > 0", name="ck_inventory_purchases_quantity_positive"),
        sa.CheckConstraint("price_rub > 0", name="ck_inventory_purchases_price_rub_positive"),
    )
    op.create_index("ix_inventory_purchases_id", "inventory_purchases", ["id"], unique=False)
    op.create_index("ix_inventory_purchases_item_id", "inventory_purchases", ["item_id"], unique=False)
    op.create_index("ix_inventory_purchases_remittance_id", "inventory_purchases", ["remittance_id"], unique=False)
    op.create_index("ix_inventory_purchases_date", "inventory_purchases", ["date"], unique=False)

    op.create_table(
        "inventory_consumptions",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("quantity_used", sa.Numeric(12, 3), nullable=False),
        sa.Column("logged_by", sa.String(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("date", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        *_timestamps("created_at", "updated_at"),
        sa.ForeignKeyConstraint(["item_id"], ["inventory_items.id"], ondelete="RESTRICT"),
        sa.CheckConstraint("quantity_used > 0", name="ck_inventory_consumptions_quantity_used_positive"),
    )
    op.create_index("ix_inventory_consumptions_id", "inventory_consumptions", ["id"], unique=False)
    op.create_index("ix_inventory_consumptions_item_id", "inventory_consumptions", ["item_id"], unique=False)
    op.create_index("ix_inventory_consumptions_date", "inventory_consumptions", ["date"], unique=False)

    op.create_table(
        "staff_ledgers",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("staff_name", sa.String(), nullable=False),
        sa.Column("monthly_salary_rub", sa.Numeric(14, 2), nullable=False),
        sa.Column("salary_paid_rub", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("advances_rub", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("setup_cost_owed_rub", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("setup_cost_paid_rub", sa.Numeric(14, 2), nullable=False, server_default="0"),
        *_timestamps("created_at", "updated_at"),
        sa.CheckConstraint("monthly_salary_rub > 0", name="ck_staff_ledgers_monthly_salary_positive"),
        sa.CheckConstraint("setup_cost_owed_rub >= 0", name="ck_staff_ledgers_setup_cost_owed_nonnegative"),
    )
    op.create_index("ix_staff_ledgers_id", "staff_ledgers", ["id"], unique=False)
    op.create_index("ix_staff_ledgers_staff_name", "staff_ledgers", ["staff_name"], unique=False)

    op.create_table(
        "staff_ledger_entries",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("staff_ledger_id", sa.Integer(), nullable=False),
        sa.Column("entry_type", sa.String(), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("date", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("compensates_entry_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["staff_ledger_id"], ["staff_ledgers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["compensates_entry_id"], ["staff_ledger_entries.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("compensates_entry_id", name="uq_staff_ledger_entries_compensates_entry_id"),
        sa.CheckConstraint("amount <> 0", name="ck_staff_ledger_entries_amount_nonzero"),
        sa.CheckConstraint(
            "entry_type IN ('salary_paid', 'advance_issued', 'setup_recovered')",
            name="ck_staff_ledger_entries_type_allowed",
        ),
    )
    op.create_index("ix_staff_ledger_entries_id", "staff_ledger_entries", ["id"], unique=False)
    op.create_index(
        "ix_staff_ledger_entries_staff_ledger_id", "staff_ledger_entries", ["staff_ledger_id"], unique=False
    )

    op.create_table(
        "meal_contracts",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("student_ref", sa.String(), nullable=False),
        sa.Column("meal_type", sa.String(), nullable=False),
        sa.Column("duration_months", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("amount_inr", sa.Numeric(14, 2), nullable=False),
        sa.Column("rubal_rate", sa.Numeric(12, 6), nullable=False),
        sa.Column("amount_rub", sa.Numeric(14, 2), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        *_timestamps("created_at"),
        sa.CheckConstraint("duration_months > 0", name="ck_meal_contracts_duration_positive"),
        sa.CheckConstraint("meal_type IN ('lunch', 'dinner', 'both')", name="ck_meal_contracts_meal_type_allowed"),
        sa.CheckConstraint("status IN ('active', 'expired')", name="ck_meal_contracts_status_allowed"),
    )
    op.create_index("ix_meal_contracts_id", "meal_contracts", ["id"], unique=False)
    op.create_index("ix_meal_contracts_student_ref", "meal_contracts", ["student_ref"], unique=False)
    op.create_index("ix_meal_contracts_end_date", "meal_contracts", ["end_date"], unique=False)
    op.create_index("ix_meal_contracts_status", "meal_contracts", ["status"], unique=False)

    op.create_table(
        "income",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("amount_inr", sa.Numeric(14, 2), nullable=False),
        sa.Column("amount_rub", sa.Numeric(14, 2), nullable=True),
        sa.Column("rubal_rate", sa.Numeric(12, 6), nullable=True),
        sa.Column("source", sa.String(), nullable=False, server_default="Student Fee"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("student_ref", sa.String(), nullable=True),
        sa.Column("date", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        *_timestamps("created_at"),
    )
    op.create_index("ix_income_id", "income", ["id"], unique=False)
    op.create_index("ix_income_student_ref", "income", ["student_ref"], unique=False)

    op.create_table(
        "fund_requests",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("amount_rub", sa.Numeric(14, 2), nullable=False),
        sa.Column("purpose", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("requested_by", sa.String(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("date_requested", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("decided_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("amount_rub > 0", name="ck_fund_requests_amount_rub_positive"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'fulfilled')",
            name="ck_fund_requests_status_allowed",
        ),
    )
    op.create_index("ix_fund_requests_id", "fund_requests", ["id"], unique=False)
    op.create_index("ix_fund_requests_status", "fund_requests", ["status"], unique=False)
    op.create_index("ix_fund_requests_date_requested", "fund_requests", ["date_requested"], unique=False)

    op.create_table(
        "inventory_requests",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("item_name", sa.String(), nullable=False),
        sa.Column("quantity_needed", sa.Numeric(12, 3), nullable=False),
        sa.Column("unit", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("requested_by", sa.String(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("date_requested", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("decided_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("quantity_needed > 0", name="ck_inventory_requests_quantity_needed_positive"),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'fulfilled')",
            name="ck_inventory_requests_status_allowed",
        ),
    )
    op.create_index("ix_inventory_requests_id", "inventory_requests", ["id"], unique=False)
    op.create_index("ix_inventory_requests_status", "inventory_requests", ["status"], unique=False)
    op.create_index(
        "ix_inventory_requests_date_requested", "inventory_requests", ["date_requested"], unique=False
    )


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        "inventory_requests",
        "fund_requests",
        "income",
        "meal_contracts",
        "staff_ledger_entries",
        "staff_ledgers",
        "inventory_consumptions",
        "inventory_purchases",
        "remittances",
        "inventory_items",
    ):
        op.drop_table(table)
