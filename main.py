"""
Backend Entry Point
Run with: python main.py
Or: uvicorn mindcare.main:app --reload
"""
import uvicorn

from mindcare.core.config import settings

if __name__ == "__main__":
    uvicorn.run("mindcare.main:app", host=settings.HOST, port=settings.PORT, reload=settings.is_development)
