# Utilities package
# Don't import here to avoid circular imports with the core dataclasses.
# Import directly where needed:
#   - from sleep_diary_app.utils.calculations import (
#         calculate_duration_minutes,
#         classify_quality,
#         round_half_up,
#     )
#   - from sleep_diary_app.utils.date_range import DateRange, get_period_range

__all__ = []
