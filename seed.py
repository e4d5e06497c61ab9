import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models import Company, CompanyType
from app.models.base import utcnow
from database import Base, SessionLocal, engine

logger = logging.getLogger(__name__)

SAMPLE_COMPANIES = [
    {"name": "海外TMT追踪", "code": "TMT", "type": CompanyType.INDUSTRY, "description": "TMT赛道，海外科技投资track"},
    {"name": "Figma", "code": "FIG.N", "type": CompanyType.US, "description": "协作设计软件龙头"},
    {"name": "DraftKings", "code": "DKNG", "type": CompanyType.US, "description": "美国领先的体育博彩和幻想体育平台"},
    {"name": "腾讯控股", "code": "0700.HK", "type": CompanyType.HK, "description": "中国互联网巨头，游戏和社交平台领导者"},
    {"name": "阿里巴巴", "code": "9988.HK", "type": CompanyType.HK, "description": "中国电商和云计算领军企业"},
    {"name": "台积电", "code": "TSM", "type": CompanyType.US, "description": "全球最大的半导体代工制造商"},
]


def seed_sample_companies(session: Session) -> int:
    """
    Insert the sample catalog when no company exists yet.
    Returns the number of companies created.
    """
    if session.query(Company.id).first() is not None:
        return 0
    now = utcnow()
    for index, sample in enumerate(SAMPLE_COMPANIES):
        session.add(
            Company(
                name=sample["name"],
                code=sample["code"],
                type=sample["type"].value,
                description=sample["description"],
                order=index,
                created_at=now,
                updated_at=now,
            )
        )
    session.commit()
    return len(SAMPLE_COMPANIES)


def seed_demo_data() -> None:
    """
    Seed the sample catalog for local development.
    """
    if settings.sample_seed_disabled:
        logger.info("DISABLE_SAMPLE_SEED is set; skipping sample seed")
        return

    try:
        Base.metadata.create_all(bind=engine)
        with SessionLocal() as db:
            created = seed_sample_companies(db)
    except SQLAlchemyError as exc:
        logger.warning("Skipping sample seed: %s", exc)
        return
    if created:
        logger.info("Seeded %d sample companies", created)
