# migrations/versions/20260101_0001_initial.py
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20260101_0001"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=160), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "admin_roles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.CheckConstraint("role IN ('admin', 'super_admin')", name=op.f("ck_admin_roles_role_name")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name=op.f("fk_admin_roles_user_id_users"), ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_admin_roles")),
    )
    op.create_index(op.f("ix_admin_roles_user_id"), "admin_roles", ["user_id"], unique=True)

    op.create_table(
        "certificates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("sno", sa.String(length=20), nullable=True),
        sa.Column("certificate_no", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("roll_no", sa.String(length=40), nullable=False),
        sa.Column("email", sa.String(length=160), nullable=False),
        sa.Column("phone", sa.String(length=30), nullable=False),
        sa.Column("department", sa.String(length=120), nullable=False),
        sa.Column("academic_year", sa.String(length=20), nullable=True),
        sa.Column("course_name", sa.String(length=200), nullable=False),
        sa.Column("location_or_institution", sa.String(length=200), nullable=False),
        sa.Column("location", sa.String(length=160), nullable=True),
        sa.Column("mode", sa.String(length=10), nullable=False),
        sa.Column("issued_by", sa.String(length=160), nullable=False),
        sa.Column("date_issued", sa.Date(), nullable=False),
        sa.Column("qr_code_url", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_certificates")),
    )
    op.create_index(op.f("ix_certificates_certificate_no"), "certificates", ["certificate_no"], unique=True)
    op.create_index(op.f("ix_certificates_status"), "certificates", ["status"], unique=False)

    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("jti", sa.String(length=64), nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("user_email", sa.String(length=160), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_refresh_tokens")),
    )
    op.create_index(op.f("ix_refresh_tokens_jti"), "refresh_tokens", ["jti"], unique=True)
    op.create_index(op.f("ix_refresh_tokens_session_id"), "refresh_tokens", ["session_id"], unique=False)
    op.create_index(op.f("ix_refresh_tokens_user_email"), "refresh_tokens", ["user_email"], unique=False)

def downgrade():
    op.drop_index(op.f("ix_refresh_tokens_user_email"), table_name="refresh_tokens")
    op.drop_index(op.f("ix_refresh_tokens_session_id"), table_name="refresh_tokens")
    op.drop_index(op.f("ix_refresh_tokens_jti"), table_name="refresh_tokens")
    op.drop_table("refresh_tokens")
    op.drop_index(op.f("ix_certificates_status"), table_name="certificates")
    op.drop_index(op.f("ix_certificates_certificate_no"), table_name="certificates")
    op.drop_table("certificates")
    op.drop_index(op.f("ix_admin_roles_user_id"), table_name="admin_roles")
    op.drop_table("admin_roles")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
