from pydantic import BaseModel


class DatabaseStatus(BaseModel):
    status: str
    message: str


class ServicesStatus(BaseModel):
    api: str = "OK"
    database: DatabaseStatus


class HealthReport(BaseModel):
    status: str
    timestamp: str
    services: ServicesStatus
    version: str
