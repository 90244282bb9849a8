from typing import Optional

from sqlalchemy.orm import Session

from tutorslot.models.people import Student, Tutor


class SqlTutorLookup:
    def __init__(self, db: Session):
        self.db = db

    def by_id(self, tutor_id: int) -> Optional[Tutor]:
        return self.db.query(Tutor).filter(Tutor.id == tutor_id).first()


class SqlStudentLookup:
    def __init__(self, db: Session):
        self.db = db

    def by_id(self, student_id: int) -> Optional[Student]:
        return self.db.query(Student).filter(Student.id == student_id).first()

    def first_available(self) -> Optional[Student]:
        return self.db.query(Student).order_by(Student.id.asc()).first()
