from models.base_model import Base, BaseModel
from sqlalchemy import Column, String, Text


class User(BaseModel, Base):
    __tablename__ = "users"
    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    avatar = Column(String(1024), nullable=False)
    cover_image = Column(String(1024), nullable=False, default="")
    # The one refresh token currently valid for this user, if any
    refresh_token = Column(Text, nullable=True)

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

