from app.models.base import Base
from app.models.weather import Units, WeatherRecord

__all__ = ["Base", "Units", "WeatherRecord"]
