"""
Card Applications Module

Handles the ID card application workflow:
1. Students submit an application with documents and a payment TRX ID
2. Administrators review pending applications
3. Approval moves the record to the approved collection; rejection keeps
   it in place with a reason

API Endpoints:
- POST /students - Submit new application
- GET /applications - Approved applications for a student
- GET /admin/dashboard, /admin/students, /admin/application/{student_id}
- POST /admin/application/{id}/action - Approve or reject
- GET /admin/files/{ref} - Download an uploaded document
"""

from .admin_router import router as admin_router
from .router import router

__all__ = ["router", "admin_router"]
