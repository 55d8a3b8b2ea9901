from sqlalchemy.orm import Session
from typing import List

from ..models.child import Child
from ..models.user import User
from ..schemas.child import ChildCreate

class ChildService:
    def __init__(self, db: Session):
        self.db = db

    def add_child(self, user: User, child_data: ChildCreate) -> Child:
        """Add a child to the user's profile."""
        child = Child(user_id=user.id, **child_data.model_dump())

        self.db.add(child)
        self.db.commit()
        self.db.refresh(child)

        return child

    def list_children(self, user: User) -> List[Child]:
        return self.db.query(Child).filter(
            Child.user_id == user.id
        ).order_by(Child.id).all()
