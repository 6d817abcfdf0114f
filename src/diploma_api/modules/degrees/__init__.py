"""
Degrees Module

Issuance and verification of degree records:
1. Single and bulk (CSV) upload of draft degrees
2. Draft editing and deletion
3. Two-step confirmation (draft -> pending_confirmation -> submitted) with revert
4. Deferred linking of submitted degrees to students once they verify their email

API Endpoints (university admin):
- POST /degrees/upload
- POST /degrees/bulk-upload
- GET /degrees, GET /degrees/{id}, POST /degrees/get-multiple
- PUT /degrees/{id}, DELETE /degrees/{id}
- POST /degrees/confirm, POST /degrees/revert-confirmation

API Endpoints (student):
- GET /student/degrees/available-to-claim
- GET /student/degrees/my-degrees
"""
