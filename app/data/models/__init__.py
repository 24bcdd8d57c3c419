#import all models so SQLAlchemy registers them in Base.metadata

from app.data.models.order import OrderModel

__all__ = ["OrderModel"]
