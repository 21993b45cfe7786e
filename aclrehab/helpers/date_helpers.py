from datetime import date
from typing import Optional


def calculate_week_post_op(surgery_date: Optional[date], today: Optional[date] = None) -> int:
    """Whole weeks since surgery. 0 before the surgery date or when it is unknown."""
    if surgery_date is None:
        return 0
    today = today or date.today()
    days = (today - surgery_date).days
    return max(0, days // 7)


def days_until_surgery(surgery_date: Optional[date], today: Optional[date] = None) -> Optional[int]:
    """Days left before surgery, negative once it has passed."""
    if surgery_date is None:
        return None
    today = today or date.today()
    return (surgery_date - today).days
