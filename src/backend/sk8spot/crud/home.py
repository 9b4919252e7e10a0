# sk8spot/crud/home.py
from sqlalchemy.orm import Session
from sqlalchemy import func
from sk8spot.models import Trick, DailyChallenge

def get_random_trick(db: Session) -> Trick | None:
    """
    tricksテーブルから1件をランダムに選ぶ．空ならNone．
    """
    return db.query(Trick).order_by(func.random()).first()

def get_active_challenges(db: Session) -> tuple[int, list[DailyChallenge]]:
    challenges = (
        db.query(DailyChallenge)
        .filter(DailyChallenge.is_active.is_(True))
        .order_by(DailyChallenge.id)
        .all()
    )
    return len(challenges), challenges
