# FastAPI routers grouped under app.api.*
from . import comments, companies, reports, sample_data, storage

__all__ = ["comments", "companies", "reports", "sample_data", "storage"]
