"""
Universities Module

Platform-admin onboarding of universities and their administrators:
1. Register a university (verified immediately, unique name and domain)
2. List verified universities with their admin assignment
3. Invite a university admin (1-hour single-use token, emailed)

API Endpoints:
- POST /universities - Register a university (platform admin)
- GET /universities/verified - Verified universities with admin info (platform admin)
- POST /universities/invite-admin - Invite a university admin (platform admin)
- GET /universities - Public list for the student registration form
"""
