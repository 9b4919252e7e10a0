# sk8spot/routers/home.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sk8spot.core.exceptions import NotFoundError
from sk8spot.crud import home as crud_home
from sk8spot.db import session
from sk8spot.schemas import home as schemas_home

router = APIRouter()

@router.get("/api/v1/home/trick-of-the-day", response_model=schemas_home.Trick)
def trick_of_the_day(db: Session = Depends(session.get_db)):
    trick = crud_home.get_random_trick(db)
    if trick is None:
        raise NotFoundError('No tricks found in the database.')
    return trick

@router.get("/api/v1/home/daily-challenges", response_model=schemas_home.DailyChallengesResponse)
def daily_challenges(db: Session = Depends(session.get_db)):
    total, challenges = crud_home.get_active_challenges(db)
    return {"total": total, "challenges": challenges}
