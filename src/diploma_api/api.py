from fastapi import APIRouter, Depends, HTTPException

from diploma_api.core.auth import AuthContext, require_platform_admin
from diploma_api.core.scheduler import list_registered_jobs, trigger_job_manually
from diploma_api.modules.auth import router as auth_router
from diploma_api.modules.degrees.router import router as degrees_router
from diploma_api.modules.degrees.student_router import router as student_degrees_router
from diploma_api.modules.universities.router import router as universities_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(universities_router, prefix="/universities", tags=["Universities"])

api_router.include_router(degrees_router, prefix="/degrees", tags=["Degrees"])

api_router.include_router(
    student_degrees_router,
    prefix="/student/degrees",
    tags=["Student - Degrees"],
)


# ============================================
# Background Job Endpoints (platform admin)
# ============================================

jobs_router = APIRouter()


@jobs_router.get("")
async def list_jobs(_admin: AuthContext = Depends(require_platform_admin)):
    """List registered background jobs and their next run time."""
    return {"jobs": list_registered_jobs()}


@jobs_router.post("/{job_id}/trigger")
async def trigger_job(job_id: str, _admin: AuthContext = Depends(require_platform_admin)):
    """Run a background job now, bypassing its schedule."""
    try:
        return await trigger_job_manually(job_id)
    except ValueError as e:
        raise HTTPException(
            status_code=404,
            detail={"error": "JOB_NOT_FOUND", "message": str(e)},
        ) from e


api_router.include_router(jobs_router, prefix="/admin/jobs", tags=["Admin - Jobs"])
