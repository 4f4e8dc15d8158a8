"""create users, customers, projects and tasks

Revision ID: 5a1f0c3e9b21
Revises:
Create Date: 2026-10-17 09:12:44.301822

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5a1f0c3e9b21'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # =========================
    # users
    # =========================
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("locale", sa.String(length=8), nullable=False, server_default="en"),
        sa.Column("company_name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("company_street", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("company_number", sa.String(length=30), nullable=False, server_default=""),
        sa.Column("company_postal_code", sa.String(length=30), nullable=False, server_default=""),
        sa.Column("company_city", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("company_state", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("company_country", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("company_phone", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("company_vat_id", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("bank_name", sa.String(length=160), nullable=False, server_default=""),
        sa.Column("bank_bic", sa.String(length=30), nullable=False, server_default=""),
        sa.Column("bank_iban_cipher", sa.Text(), nullable=False, server_default=""),
        sa.Column("bank_iban_iv", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("bank_iban_tag", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("invoice_notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("vat_percent", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("invoice_number", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="user"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("role in ('user','admin')", name="ck_users_role"),
        sa.CheckConstraint("vat_percent >= 0", name="ck_users_vat_percent"),
    )

    # =========================
    # customers
    # =========================
    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("contact_person", sa.String(length=160), nullable=False, server_default=""),
        sa.Column("billing_street", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("billing_number", sa.String(length=30), nullable=False, server_default=""),
        sa.Column("billing_postal_code", sa.String(length=30), nullable=False, server_default=""),
        sa.Column("billing_city", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("billing_state", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("billing_country", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("phone", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("vat_number", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_customers_user", ondelete="CASCADE"),
    )
    op.create_index("ix_customers_user_id", "customers", ["user_id"])

    # =========================
    # projects
    # =========================
    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "pricing_type",
            sa.Enum("HOURLY", "FIXED", name="pricing_type", native_enum=False),
            nullable=False,
            server_default="HOURLY",
        ),
        sa.Column("hourly_rate", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("fixed_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("invoice_number", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("invoice_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], name="fk_projects_customer", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_projects_user", ondelete="CASCADE"),
    )
    op.create_index("ix_projects_customer_id", "projects", ["customer_id"])
    op.create_index("ix_projects_user_id", "projects", ["user_id"])
    op.create_index("ix_projects_user_customer", "projects", ["user_id", "customer_id"])

    # =========================
    # tasks
    # =========================
    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("estimated_hours", sa.Numeric(10, 2), nullable=False, server_default="1"),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("order_num", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], name="fk_tasks_project", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_tasks_user", ondelete="CASCADE"),
    )
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"])
    op.create_index("ix_tasks_user_id", "tasks", ["user_id"])
    op.create_index("ix_tasks_project_order", "tasks", ["project_id", "order_num", "id"])


def downgrade():
    op.drop_index("ix_tasks_project_order", table_name="tasks")
    op.drop_index("ix_tasks_user_id", table_name="tasks")
    op.drop_index("ix_tasks_project_id", table_name="tasks")
    op.drop_table("tasks")

    op.drop_index("ix_projects_user_customer", table_name="projects")
    op.drop_index("ix_projects_user_id", table_name="projects")
    op.drop_index("ix_projects_customer_id", table_name="projects")
    op.drop_table("projects")

    op.drop_index("ix_customers_user_id", table_name="customers")
    op.drop_table("customers")

    op.drop_table("users")
