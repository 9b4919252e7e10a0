# __init__.py に例えば from .spot import Spot と書くことで，models/spot.pyファイルの中に定義されているSpotクラスを，modelsパッケージの直下にあるかのように昇格させることができます．
# このおかげでcrudなどにおいて，from sk8spot import models と書けば models.Spot とテーブル定義を指定できる．
from .spot import Spot
from .spot_image import SpotImage
from .collection import Collection, CollectionSpot
from .trick import Trick, DailyChallenge
