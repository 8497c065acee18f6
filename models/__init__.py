from flask import current_app

from models.db_storage import DBStorage
from models.user import User


def get_storage() -> DBStorage:
    """The DBStorage handle of the running application."""
    return current_app.extensions["storage"]
