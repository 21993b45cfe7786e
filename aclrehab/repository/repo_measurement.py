from typing import List, Optional
import uuid

from fastapi import Depends
from sqlalchemy.orm import Session

from aclrehab.db.base import get_db
from aclrehab.models.model_measurement import Measurement


class MeasurementRepository:
    def __init__(self, db_session: Session = Depends(get_db)):
        self.db = db_session

    def create(self, measurement: Measurement) -> Measurement:
        self.db.add(measurement)
        self.db.commit()
        self.db.refresh(measurement)
        return measurement

    def get_by_id(self, user_id: uuid.UUID, measurement_id: uuid.UUID) -> Optional[Measurement]:
        return self.db.query(Measurement).filter(
            Measurement.user_id == user_id,
            Measurement.measurement_id == measurement_id
        ).first()

    def list_by_user(self, user_id: uuid.UUID, measurement_type: Optional[str] = None) -> List[Measurement]:
        query = self.db.query(Measurement).filter(Measurement.user_id == user_id)
        if measurement_type:
            query = query.filter(Measurement.type == measurement_type)
        return query.order_by(Measurement.timestamp.desc()).all()

    def update(self, measurement: Measurement) -> Measurement:
        self.db.commit()
        self.db.refresh(measurement)
        return measurement

    def delete(self, measurement: Measurement) -> None:
        self.db.delete(measurement)
        self.db.commit()

    def delete_by_user_id(self, user_id: uuid.UUID) -> int:
        deleted = self.db.query(Measurement).filter(Measurement.user_id == user_id).delete()
        self.db.commit()
        return deleted
