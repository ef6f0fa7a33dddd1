"""Shared package for the field project management application.

This package contains code used by both the backend Flask API and the field
client. It includes:

- Database models (models.py) - SQLAlchemy models for projects, photos, reports, tasks and profiles
- Enums (enums.py) - Status, priority, role and report type values
- Validation utilities (validation.py, schemas.py) - Input validation and sanitization
- Photo grid and project list helpers (utils.py) - filtering, date grouping, selection, sorting
- Timeline calculations (timeline.py) - progress percentage and schedule status

All shared components behave identically in backend and client contexts.
"""
