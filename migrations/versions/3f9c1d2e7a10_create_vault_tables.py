"""Create users, folders, documents and contacts tables."""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f9c1d2e7a10"
down_revision = None
branch_labels = None
depends_on = None


VAULT_CATEGORY_ENUM = "vault_category"
VAULT_CATEGORY_VALUES = ("document", "medical")


def upgrade() -> None:
    """Create the vault schema."""

    vault_category = sa.Enum(*VAULT_CATEGORY_VALUES, name=VAULT_CATEGORY_ENUM)
    vault_category.create(op.get_bind(), checkfirst=True)
    category_column_type = sa.Enum(
        *VAULT_CATEGORY_VALUES, name=VAULT_CATEGORY_ENUM, create_type=False
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("otp_hash", sa.String(length=255), nullable=True),
        sa.Column("otp_expires_at", sa.DateTime(), nullable=True),
        sa.Column("name", sa.String(length=120), nullable=True),
        sa.Column("profile_pic", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("dob", sa.String(length=10), nullable=True),
        sa.Column(
            "gender",
            sa.String(length=32),
            nullable=False,
            server_default="Prefer not to say",
        ),
        sa.Column("blood_group", sa.String(length=16), nullable=False, server_default="Unknown"),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("allergies", sa.Text(), nullable=False, server_default="None"),
        sa.Column("conditions", sa.Text(), nullable=False, server_default="None"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "folders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column(
            "category",
            category_column_type,
            nullable=False,
            server_default=sa.text("'document'"),
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_folders_user_id", "folders", ["user_id"])

    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("folder_id", sa.Integer(), sa.ForeignKey("folders.id"), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column(
            "category",
            category_column_type,
            nullable=False,
            server_default=sa.text("'document'"),
        ),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("original_name", sa.String(length=255), nullable=False),
        sa.Column("file_path", sa.String(length=512), nullable=False),
        sa.Column("file_type", sa.String(length=128), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("has_reminder", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reminder_date", sa.Date(), nullable=True),
        sa.Column("reminder_note", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("last_accessed", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_documents_user_id", "documents", ["user_id"])
    op.create_index("ix_documents_folder_id", "documents", ["folder_id"])

    op.create_table(
        "contacts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("relationship", sa.String(length=64), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column(
            "is_emergency_service",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
    )
    op.create_index("ix_contacts_user_id", "contacts", ["user_id"])


def downgrade() -> None:
    """Drop the vault schema."""

    op.drop_index("ix_contacts_user_id", table_name="contacts")
    op.drop_table("contacts")
    op.drop_index("ix_documents_folder_id", table_name="documents")
    op.drop_index("ix_documents_user_id", table_name="documents")
    op.drop_table("documents")
    op.drop_index("ix_folders_user_id", table_name="folders")
    op.drop_table("folders")
    op.drop_table("users")

    vault_category = sa.Enum(*VAULT_CATEGORY_VALUES, name=VAULT_CATEGORY_ENUM)
    vault_category.drop(op.get_bind(), checkfirst=True)
