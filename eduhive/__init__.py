"""EduHive backend: student-community feed with mentions, notifications and an in-app assistant."""

__version__ = "1.0.0"
