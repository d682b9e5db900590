# main.py
import logging
import os
import sys
from services.test_service import TestService
from config.settings import Config

# --- FastAPI imports ---
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from routes.api import router as api_router
import uvicorn


def setup_logging():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    for noisy in ('selenium', 'urllib3'):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def create_app():
    app = FastAPI(title="Dropdown Combination Validator")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.getenv('CORS_ORIGINS', '*').split(','),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router)
    return app


def run_cli(csv_path=None):
    service = TestService(Config)
    try:
        service.run_and_report(csv_path=csv_path)
    except KeyboardInterrupt:
        logging.warning('Test interrupted by user.')
    except Exception as e:
        logging.error(f'Fatal error: {e}')
        return 1
    return 0


def run_api():
    uvicorn.run(create_app(), host="0.0.0.0", port=int(os.getenv("PORT", 8000)))


if __name__ == '__main__':
    setup_logging()
    mode = os.getenv('MODE', 'cli').lower()
    if len(sys.argv) > 1 and sys.argv[1] in ('cli', 'api'):
        mode = sys.argv[1]
    if mode == 'api':
        run_api()
    else:
        sys.exit(run_cli(sys.argv[2] if len(sys.argv) > 2 else None))

# Usage:
#   python main.py cli [urls.csv]   # CLI mode (default)
#   python main.py api              # API server mode
#   MODE=api python main.py         # API server mode via env
