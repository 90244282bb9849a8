from sqlalchemy import Column, Integer, String, Numeric, TIMESTAMP, func
from tutorslot.database import Base
from decimal import Decimal

# Minimal read-side copies of the profile records the scheduler needs.
# Profile management lives outside this service.

# ---------------- TUTOR ----------------
class Tutor(Base):
    __tablename__ = "tutors"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(100), nullable=False)
    hourly_rate = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    created_at = Column(TIMESTAMP, server_default=func.now())


# ---------------- STUDENT ----------------
class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(100), nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())
