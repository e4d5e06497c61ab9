import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.schemas import Envelope
from database import get_db
from seed import seed_sample_companies

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/init-sample-data", response_model=Envelope[int])
def init_sample_data(db: Session = Depends(get_db)):
    created = seed_sample_companies(db)
    logger.info("Sample data request created %d companies", created)
    return Envelope(data=created)
