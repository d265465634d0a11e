"""Example: drive the rotation service directly (no web layer).

Generates tomorrow's roster and prints it, then lists replacement
suggestions for the same day.
"""

from src.teller_rotation.teller_rotation.main import build_from_settings


def main():
    container = build_from_settings()
    service = container.rotation_service

    schedule = service.generate_or_fetch()
    print(schedule.message or "Schedule loaded", schedule.to_dict()["schedule"])

    for suggestion in service.suggest(schedule.day_key):
        print(suggestion.to_dict())


if __name__ == "__main__":
    main()
