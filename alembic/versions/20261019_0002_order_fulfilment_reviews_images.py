"""order fulfilment, reviews and product images

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19 00:00:00.000000

Hey future me - order lines now carry their own status so each provider can accept,
reject, ship and deliver its part of an order. provider_id is copied from the product
onto the line (backfilled here for existing rows) so provider queues need no join.
Batch mode because SQLite cannot add foreign keys with a plain ALTER.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("orders") as batch_op:
        batch_op.add_column(
            sa.Column("shipped_at", sa.DateTime(timezone=True), nullable=True)
        )
        batch_op.add_column(
            sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True)
        )

    with op.batch_alter_table("order_items") as batch_op:
        batch_op.add_column(sa.Column("provider_id", sa.Integer(), nullable=True))
        batch_op.add_column(
            sa.Column("status", sa.String(20), nullable=False, server_default="PENDING")
        )
        batch_op.add_column(sa.Column("rejection_reason", sa.String(500), nullable=True))
        batch_op.add_column(
            sa.Column("shipped_at", sa.DateTime(timezone=True), nullable=True)
        )
        batch_op.add_column(
            sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True)
        )
        batch_op.create_foreign_key(
            "fk_order_items_provider_id",
            "providers",
            ["provider_id"],
            ["id"],
            ondelete="SET NULL",
        )
        batch_op.create_index("ix_order_items_provider_id", ["provider_id"])
        batch_op.create_index("ix_order_items_status", ["status"])

    op.execute(
        "UPDATE order_items SET provider_id = "
        "(SELECT products.provider_id FROM products "
        "WHERE products.id = order_items.product_id)"
    )

    op.create_table(
        "order_reviews",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "order_id",
            sa.Integer(),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_order_reviews_rating"),
    )
    op.create_index("ix_order_reviews_user_id", "order_reviews", ["user_id"])

    op.create_table(
        "product_images",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "product_id",
            sa.Integer(),
            sa.ForeignKey("products.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("image_url", sa.String(500), nullable=False),
        sa.Column("alt_text", sa.String(200), nullable=True),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_product_images_product_id", "product_images", ["product_id"])


def downgrade() -> None:
    op.drop_table("product_images")
    op.drop_table("order_reviews")

    with op.batch_alter_table("order_items") as batch_op:
        batch_op.drop_index("ix_order_items_status")
        batch_op.drop_index("ix_order_items_provider_id")
        batch_op.drop_constraint("fk_order_items_provider_id", type_="foreignkey")
        for column in (
            "delivered_at",
            "shipped_at",
            "rejection_reason",
            "status",
            "provider_id",
        ):
            batch_op.drop_column(column)

    with op.batch_alter_table("orders") as batch_op:
        batch_op.drop_column("delivered_at")
        batch_op.drop_column("shipped_at")
