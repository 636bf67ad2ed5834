# Services package for the sleep diary
#
# Use explicit imports to avoid circular dependencies:
#   from sleep_diary_app.services.sleep_diary_service import SleepDiaryService
#   from sleep_diary_app.services.sleep_store import Actions, SleepStore
#   from sleep_diary_app.services.cache_service import StatisticsCache
#   from sleep_diary_app.services.export_service import ExportService

__all__: list[str] = []
