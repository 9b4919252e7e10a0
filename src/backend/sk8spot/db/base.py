# Alembicやinit_db.pyから import することで，Baseを継承した全てのモデルがSQLAlchemyに認識される．
from sk8spot.db.base_class import Base # noqa: F401
from sk8spot.models import Spot, SpotImage, Collection, CollectionSpot, Trick, DailyChallenge # noqa: F401
