import math
import numpy as np

EARTH_RADIUS_KM = 6371.0

def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    2点間の大円距離（km，小数第2位で丸め）．
    """
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 2)

def haversine_km_many(lat: float, lon: float, lats, lons) -> np.ndarray:
    """
    1点から複数点への距離をまとめて計算する（numpyでベクトル化）．
    """
    lats = np.radians(np.asarray(lats, dtype=float))
    lons = np.radians(np.asarray(lons, dtype=float))
    phi = math.radians(lat)
    lam = math.radians(lon)

    a = np.sin((lats - phi) / 2) ** 2 + math.cos(phi) * np.cos(lats) * np.sin((lons - lam) / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return np.round(EARTH_RADIUS_KM * c, 2)

def bounding_box(lat: float, lon: float, radius_km: float) -> tuple[float, float, float, float]:
    """
    半径radius_kmの円を包む緯度経度の矩形（min_lat, max_lat, min_lon, max_lon）．
    極付近では経度方向を全周にする．
    """
    d_lat = math.degrees(radius_km / EARTH_RADIUS_KM)
    min_lat, max_lat = max(lat - d_lat, -90.0), min(lat + d_lat, 90.0)

    cos_lat = math.cos(math.radians(lat))
    if cos_lat < 1e-6 or max_lat >= 90.0 or min_lat <= -90.0:
        return min_lat, max_lat, -180.0, 180.0
    d_lon = math.degrees(radius_km / (EARTH_RADIUS_KM * cos_lat))
    if d_lon >= 180.0:
        return min_lat, max_lat, -180.0, 180.0
    # 日付変更線をまたぐ場合も全周にして，距離判定に任せる．
    if lon - d_lon < -180.0 or lon + d_lon > 180.0:
        return min_lat, max_lat, -180.0, 180.0
    return min_lat, max_lat, lon - d_lon, lon + d_lon

def rank_by_distance(lat: float, lon: float, items: list, radius_km: float, limit: int | None = None) -> list[tuple]:
    """
    (item, 距離km)のリストを，半径外を除いて近い順に返す．
    itemはlatitude，longitude属性を持つこと．
    """
    if not items:
        return []
    distances = haversine_km_many(lat, lon, [i.latitude for i in items], [i.longitude for i in items])
    order = np.argsort(distances, kind='stable')
    ranked = [(items[i], float(distances[i])) for i in order if distances[i] <= radius_km]
    return ranked[:limit] if limit is not None else ranked
