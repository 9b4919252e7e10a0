"""
サービス全体で共通の例外体系．
HTTPステータスへの変換は main.py の例外ハンドラが status_code を見て行う．
"""

class SpotServiceError(Exception):
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class ValidationError(SpotServiceError):
    """
    必須項目の欠落や不正な入力．リトライしない．
    """
    status_code = 400

class NotFoundError(SpotServiceError):
    status_code = 404

class DataIntegrityError(SpotServiceError):
    """
    保存済みの行がSpotの不変条件（位置情報必須）を満たしていない．
    既定の座標で埋めたりせず，必ず失敗させる．
    """
    status_code = 500

class DependencyError(SpotServiceError):
    """
    外部依存（データストア，分類器，ストレージ）の失敗．
    """
    status_code = 503

class DatastoreError(DependencyError):
    pass

class ClassifierError(DependencyError):
    pass

class StorageError(DependencyError):
    pass

class QueryFailedError(SpotServiceError):
    status_code = 500

class CacheError(SpotServiceError):
    """
    キャッシュの失敗．常にキャッシュクライアント内で握りつぶしてログに残す．
    """
    pass
