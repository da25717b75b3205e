# Overview: Flask extension instances for database, migrations and in-memory carts.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

from .services.cart_service import CartRegistry

db = SQLAlchemy()
migrate = Migrate()
carts = CartRegistry()
