import uvicorn

from lms.settings import settings


def main():
    uvicorn.run("lms.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
