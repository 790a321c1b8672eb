"""
Celery tasks package.

Tasks are organized by domain:
- email_tasks: verification code delivery
"""

from storefront.tasks import email_tasks

__all__ = ["email_tasks"]
