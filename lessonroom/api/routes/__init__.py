from . import events, lessons, maintenance, students, teachers, units

__all__ = ["events", "lessons", "maintenance", "students", "teachers", "units"]
