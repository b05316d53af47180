from fastapi import APIRouter, HTTPException, UploadFile

from stress_engine.models.driver import DriverUpload
from stress_engine.services.driver_parser import parse_driver_file

router = APIRouter(tags=["drivers"])

_ALLOWED_EXTENSIONS = ("csv", "xlsx", "xls")


@router.post("/drivers/upload", response_model=DriverUpload)
async def upload_driver_file(file: UploadFile):
    """Upload a CSV or Excel driver table and return the parsed series."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    ext = file.filename.rsplit(".", 1)[-1].lower() if "." in file.filename else ""
    if ext not in _ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '.{ext}'. Please upload .csv, .xlsx or .xls",
        )

    try:
        upload = parse_driver_file(file.file, file.filename)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return upload
