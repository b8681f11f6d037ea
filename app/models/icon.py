from sqlalchemy import Column, Integer, String

from app.db.base import Base


class Icon(Base):
    """Icon catalog row referenced by attribute records. Managed elsewhere; read-only here."""
    __tablename__ = "icons"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(100), unique=True, nullable=True)
    category = Column(String(50), nullable=True)  # amenity, facility, view, highlight, label, nearby
    icon_path = Column(String(500), nullable=True)

    # Localized display names
    name = Column(String(255), nullable=True)
    name_th = Column(String(255), nullable=True)
    name_ch = Column(String(255), nullable=True)
    name_ru = Column(String(255), nullable=True)

    def localized_names(self) -> dict:
        """Flat icon fields merged into attribute items on read."""
        return {
            "icon_name": self.name,
            "icon_name_th": self.name_th,
            "icon_name_ch": self.name_ch,
            "icon_name_ru": self.name_ru,
            "icon_path": self.icon_path,
        }
