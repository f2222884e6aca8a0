import uvicorn

from crossing_monitor.config import settings

if __name__ == "__main__":
    uvicorn.run("crossing_monitor.main:app", host=settings.host, port=settings.port)
