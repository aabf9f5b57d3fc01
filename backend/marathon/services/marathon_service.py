"""
Bible Marathon Configuration Service
"""
import logging
from datetime import timedelta
from typing import Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from marathon.core.config import settings
from marathon.core.exceptions import DatabaseException, ValidationException
from marathon.db.models import MarathonConfig, Reader, as_naive_utc, utcnow
from marathon.models.marathon import MarathonConfigUpdate

logger = logging.getLogger(__name__)

class MarathonService:
    """Service for the single active marathon"""

    def get_active_config(self, db: Session) -> Optional[MarathonConfig]:
        """Active marathon row or None"""
        try:
            return db.query(MarathonConfig).filter(MarathonConfig.is_active.is_(True)).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load marathon config: {str(e)}")
            raise DatabaseException(f"Failed to load marathon config: {str(e)}")

    def get_latest_config(self, db: Session) -> Optional[MarathonConfig]:
        """Most recently created marathon row, active or not"""
        try:
            return db.query(MarathonConfig).order_by(MarathonConfig.id.desc()).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load latest marathon config: {str(e)}")
            raise DatabaseException(f"Failed to load marathon config: {str(e)}")

    def update_config(self, db: Session, config_update: MarathonConfigUpdate) -> MarathonConfig:
        """
        Update the active marathon, or the latest one when none is active.
        A row is created only when no marathon exists yet.
        Args:
            db: database session
            config_update: fields to change
        Returns:
            The stored marathon row
        """
        update_data = {
            field: as_naive_utc(value) if field in ("start_time", "end_time") else value
            for field, value in config_update.dict(exclude_unset=True).items()
            if value is not None
        }

        # a deactivated marathon is updated in place rather than replaced
        config = self.get_active_config(db) or self.get_latest_config(db)
        if not config:
            now = utcnow()
            start_time = update_data.get("start_time", now)
            config = MarathonConfig(
                name=update_data.get("name", settings.DEFAULT_MARATHON_NAME),
                start_time=start_time,
                end_time=update_data.get("end_time", start_time + timedelta(hours=settings.DEFAULT_MARATHON_HOURS)),
                is_active=update_data.get("is_active", True),
                description=update_data.get("description", settings.DEFAULT_MARATHON_DESCRIPTION)
            )
            db.add(config)
            logger.info(f"Creating marathon config: {config.name}")
        else:
            for field, value in update_data.items():
                setattr(config, field, value)

        if config.start_time and config.end_time and config.end_time <= config.start_time:
            db.rollback()
            raise ValidationException("end_time must be after start_time")

        try:
            config.total_participants = db.query(func.count(Reader.id)) \
                .filter(Reader.is_active.is_(True)).scalar() or 0
            db.commit()
            db.refresh(config)
            logger.info(f"Marathon config {config.id} saved (active={config.is_active})")
            return config

        except IntegrityError as e:
            db.rollback()
            logger.error(f"Marathon config conflicts with another active marathon: {str(e)}")
            raise ValidationException("Another marathon is already active")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to save marathon config: {str(e)}")
            raise DatabaseException(f"Failed to save marathon config: {str(e)}")

marathon_service = MarathonService()
