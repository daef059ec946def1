from sqlalchemy.orm import Session

from .academic_routes import router as academic_router
from .database import Base, engine
from .mobile_routes import router as mobile_router
from .office_routes import router as office_router
from .routes import auth_router, router
from .services import seed_database


def init_school_module() -> None:
    Base.metadata.create_all(bind=engine)
    db = Session(bind=engine)
    try:
        seed_database(db)
    finally:
        db.close()


# self-service routes first so /students/profile is not read as /students/{id}
ROUTERS = [auth_router, mobile_router, router, academic_router, office_router]

__all__ = ["ROUTERS", "init_school_module"]
