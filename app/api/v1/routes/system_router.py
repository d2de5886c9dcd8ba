from fastapi import APIRouter


router = APIRouter()

# General-purpose routes
@router.get("/health")
async def health_check():
    return {"success" : True , "status": "healthy"}
