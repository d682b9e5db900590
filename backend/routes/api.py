# routes/api.py
from fastapi import APIRouter, Depends, HTTPException, Query
from services.test_service import TestService
from config.settings import Config
from typing import Optional

router = APIRouter()

# Last run's report, kept in memory for GET /results
last_results = None


def get_test_service():
    return TestService(Config)


@router.post('/run-test')
def run_test(
    url: Optional[str] = Query(None, description="Test a single URL instead of the CSV file"),
    csv_path: Optional[str] = Query(None, description="CSV file with test cases; defaults to CSV_PATH"),
    service: TestService = Depends(get_test_service)
):
    global last_results
    try:
        last_results = service.run_and_report(csv_path=csv_path, url=url)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    if last_results is None:
        raise HTTPException(status_code=500, detail="Run finished without a report")
    return {"status": "success", "summary": last_results.get('summary', {}), "report": last_results}


@router.get('/results')
def get_results():
    if last_results is None:
        raise HTTPException(status_code=404, detail="No results available. Run a test first.")
    return last_results


@router.get('/status')
def status():
    return {"status": "ok"}
