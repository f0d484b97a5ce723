from app.models.user import User
from app.models.farmer import FarmerProfile
from app.models.product import Product
from app.models.order import Order, OrderItem, OrderEvent
from app.models.review import Review
from app.models.message import Message
from app.models.favorite import Favorite
from app.models.notification import Notification
from app.db.session import engine, Base

def init_db(bind=None):
    # Create all tables
    Base.metadata.create_all(bind=bind or engine)
