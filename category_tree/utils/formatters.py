# category_tree/utils/formatters.py
from datetime import datetime
from typing import Optional
import pytz
from ..config import Config

EPOCH = datetime(1970, 1, 1, tzinfo=pytz.utc)

def to_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Normalize a timestamp to UTC; naive values are read in the configured timezone"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = pytz.timezone(Config.TIMEZONE).localize(dt)
    return dt.astimezone(pytz.utc)

def format_datetime(dt: Optional[datetime]) -> str:
    """Format a timestamp in the configured timezone"""
    if dt is None:
        return "-"
    local_tz = pytz.timezone(Config.TIMEZONE)
    return to_utc(dt).astimezone(local_tz).strftime("%Y-%m-%d %H:%M:%S")

def format_amount(amount: Optional[float]) -> str:
    """Format a revenue figure"""
    return f"{amount or 0:,.2f}"
