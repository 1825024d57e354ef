import uvicorn
from libris.config import settings

if __name__ == "__main__":
    uvicorn.run("libris.main:app", host="0.0.0.0", port=settings.PORT, log_config=None)
