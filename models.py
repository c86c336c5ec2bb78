from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


class InventoryItem(db.Model):
    __tablename__ = 'inventory_items'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    code = db.Column(db.String(50), unique=True, index=True, nullable=False)  # unique within catalog
    description = db.Column(db.String(500), nullable=False, default='')
    category = db.Column(db.String(20), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    unit = db.Column(db.String(10), nullable=False)
    purchase_price = db.Column(db.Float, nullable=True)
    sale_price = db.Column(db.Float, nullable=True)
    image_filename = db.Column(db.String(255), nullable=True)  # stored under UPLOAD_DIR
    created_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.CheckConstraint('quantity >= 0', name='ck_inventory_items_quantity_non_negative'),
    )
