"""create familybank core tables

Revision ID: 0001_familybank_core
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_familybank_core"
down_revision = None
branch_labels = None
depends_on = None


def _created_at() -> sa.Column:
    return sa.Column(
        "CreatedAt",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "UpdatedAt",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def _account_fk() -> sa.Column:
    return sa.Column(
        "AccountId",
        sa.Integer(),
        sa.ForeignKey("accounts.Id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("ParentUserId", sa.Integer(), nullable=False),
        sa.Column("Name", sa.String(length=120), nullable=False),
        sa.Column("Age", sa.Integer(), nullable=True),
        sa.Column("DailySpendLimit", sa.Integer(), nullable=True),
        sa.Column("PerTransactionLimit", sa.Integer(), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_accounts_ParentUserId", "accounts", ["ParentUserId"])

    op.create_table(
        "jars",
        sa.Column("Id", sa.Integer(), primary_key=True),
        _account_fk(),
        sa.Column("JarType", sa.String(length=20), nullable=False),
        sa.Column("Percentage", sa.Integer(), nullable=False),
        _created_at(),
        sa.UniqueConstraint("AccountId", "JarType", name="uq_jars_account_jar"),
        sa.CheckConstraint("Percentage >= 0 AND Percentage <= 100", name="ck_jars_percentage_range"),
    )
    op.create_index("ix_jars_AccountId", "jars", ["AccountId"])

    op.create_table(
        "balances",
        sa.Column("Id", sa.Integer(), primary_key=True),
        _account_fk(),
        sa.Column("JarType", sa.String(length=20), nullable=False),
        sa.Column("Amount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _updated_at(),
        sa.UniqueConstraint("AccountId", "JarType", name="uq_balances_account_jar"),
    )
    op.create_index("ix_balances_AccountId", "balances", ["AccountId"])

    op.create_table(
        "transactions",
        sa.Column("Id", sa.Integer(), primary_key=True),
        _account_fk(),
        sa.Column("JarType", sa.String(length=20), nullable=False),
        sa.Column("Amount", sa.Integer(), nullable=False),
        sa.Column("TransactionType", sa.String(length=40), nullable=False),
        sa.Column("ReferenceType", sa.String(length=40), nullable=True),
        sa.Column("ReferenceId", sa.Integer(), nullable=True),
        sa.Column("Description", sa.String(length=300), nullable=True),
        sa.Column("CreatedByUserId", sa.Integer(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_transactions_AccountId", "transactions", ["AccountId"])
    op.create_index("ix_transactions_account_created", "transactions", ["AccountId", "CreatedAt"])
    op.create_index("ix_transactions_reference", "transactions", ["ReferenceType", "ReferenceId"])

    op.create_table(
        "chores",
        sa.Column("Id", sa.Integer(), primary_key=True),
        _account_fk(),
        sa.Column("Title", sa.String(length=200), nullable=False),
        sa.Column("Description", sa.Text(), nullable=True),
        sa.Column("TokenReward", sa.Integer(), nullable=False),
        sa.Column("Status", sa.String(length=20), nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("DueAt", sa.DateTime(timezone=True), nullable=True),
        sa.Column("SubmittedAt", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ApprovedAt", sa.DateTime(timezone=True), nullable=True),
        sa.Column("IsRecurring", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("RecurrenceType", sa.String(length=20), nullable=True),
        sa.Column("RecurrenceDays", sa.String(length=20), nullable=True),
        sa.Column("ParentChoreId", sa.Integer(), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_chores_AccountId", "chores", ["AccountId"])
    op.create_index("ix_chores_ParentChoreId", "chores", ["ParentChoreId"])
    op.create_index("ix_chores_account_status", "chores", ["AccountId", "Status"])
    op.create_index("ix_chores_status_approved", "chores", ["Status", "ApprovedAt"])

    op.create_table(
        "chore_recurrence_runs",
        sa.Column("Id", sa.Integer(), primary_key=True),
        _account_fk(),
        sa.Column("TemplateChoreId", sa.Integer(), nullable=False),
        sa.Column("RunDate", sa.Date(), nullable=False),
        sa.Column("ChoreId", sa.Integer(), nullable=True),
        _created_at(),
        sa.UniqueConstraint("TemplateChoreId", "RunDate", name="uq_chore_recurrence_runs_template_date"),
    )
    op.create_index("ix_chore_recurrence_runs_AccountId", "chore_recurrence_runs", ["AccountId"])
    op.create_index("ix_chore_recurrence_runs_TemplateChoreId", "chore_recurrence_runs", ["TemplateChoreId"])

    op.create_table(
        "allowances",
        sa.Column("Id", sa.Integer(), primary_key=True),
        _account_fk(),
        sa.Column("WeeklyAmount", sa.Integer(), nullable=False),
        sa.Column("DayOfWeek", sa.Integer(), nullable=False),
        sa.Column("NextPaymentAt", sa.DateTime(timezone=True), nullable=False),
        sa.Column("IsActive", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("CreatedByUserId", sa.Integer(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("AccountId", name="uq_allowances_account"),
    )
    op.create_index("ix_allowances_AccountId", "allowances", ["AccountId"])
    op.create_index("ix_allowances_NextPaymentAt", "allowances", ["NextPaymentAt"])

    op.create_table(
        "allowance_payments",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column(
            "AllowanceId",
            sa.Integer(),
            sa.ForeignKey("allowances.Id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("AccountId", sa.Integer(), nullable=False),
        sa.Column("PeriodDate", sa.Date(), nullable=False),
        sa.Column("Amount", sa.Integer(), nullable=False),
        sa.Column(
            "PaidAt",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.UniqueConstraint("AllowanceId", "PeriodDate", name="uq_allowance_payments_period"),
    )
    op.create_index("ix_allowance_payments_AllowanceId", "allowance_payments", ["AllowanceId"])
    op.create_index("ix_allowance_payments_AccountId", "allowance_payments", ["AccountId"])

    op.create_table(
        "wishlist_items",
        sa.Column("Id", sa.Integer(), primary_key=True),
        _account_fk(),
        sa.Column("Title", sa.String(length=200), nullable=False),
        sa.Column("Description", sa.Text(), nullable=True),
        sa.Column("TargetAmount", sa.Integer(), nullable=False),
        sa.Column("ApprovedByParent", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("IsPurchased", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("PurchasedAt", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_wishlist_items_AccountId", "wishlist_items", ["AccountId"])

    op.create_table(
        "notifications",
        sa.Column("Id", sa.Integer(), primary_key=True),
        sa.Column("UserId", sa.Integer(), nullable=False),
        _account_fk(),
        sa.Column("Kind", sa.String(length=40), nullable=False),
        sa.Column("Title", sa.Unicode(length=160), nullable=False),
        sa.Column("Body", sa.Unicode(length=400), nullable=True),
        sa.Column("Amount", sa.Integer(), nullable=True),
        sa.Column("ReferenceId", sa.Integer(), nullable=True),
        sa.Column("IsRead", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("ReadAt", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_notifications_UserId", "notifications", ["UserId"])
    op.create_index("ix_notifications_AccountId", "notifications", ["AccountId"])
    op.create_index("ix_notifications_user_read_created", "notifications", ["UserId", "IsRead", "CreatedAt"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("wishlist_items")
    op.drop_table("allowance_payments")
    op.drop_table("allowances")
    op.drop_table("chore_recurrence_runs")
    op.drop_table("chores")
    op.drop_table("transactions")
    op.drop_table("balances")
    op.drop_table("jars")
    op.drop_table("accounts")
