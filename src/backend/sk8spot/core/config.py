from functools import lru_cache
import boto3
from pydantic import PostgresDsn, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """
    1. Setting()の役割
        ・早期失敗：システム環境変数の不足があれば起動時に停止
        ・型の保証：型変換を一手に担うことでアプリ全体に型安全を提供
        ・バリデーション：環境変数の定義域やフォーマットをチェック．例：Field(default=5, gt=0)
        ・環境変数名の一元管理：システム環境変数の名前を変更する際にコード全体に影響しない．

    2. 読み込み優先順位
        ・コード引数：Settings(DB_PORT=9999)など
        ・システム環境変数
        ・.envファイル
        ・デフォルト値（クラス宣言内）
    """
    ENVIRONMENT: str = 'development' # development / production / test
    LOG_LEVEL: str = 'INFO'
    CORS_ORIGINS: str = '*' # カンマ区切り

    DB_HOST: str = 'localhost' # ローカルスクリプト用のデフォルト値
    DB_PORT: int = 5432
    DB_NAME: str
    DB_USER: str
    DB_PASSWORD: str

    # キャッシュ（REDIS_URLが未設定ならキャッシュ無効）
    REDIS_URL: str | None = None
    CACHE_TTL: int = 60 * 60 # 1時間（秒）

    # 外部の画像分類器
    ML_SERVICE_URL: str = 'http://localhost:5000'
    USE_EXTERNAL_ML_SERVICE: bool = False
    ML_TIMEOUT_SECONDS: float = 30.0
    ROBOFLOW_API_KEY: str | None = None
    ROBOFLOW_MODEL_ID: str | None = None
    ROBOFLOW_VERSION_NUMBER: str = '1'
    ROBOFLOW_API_URL: str = 'https://detect.roboflow.com'

    # 解析完了通知の送り先（未設定なら通知しない）
    NOTIFICATION_SERVICE_URL: str | None = None
    NOTIFICATION_TIMEOUT_SECONDS: float = 5.0

    # 認証
    JWT_SECRET: str
    JWT_ALGORITHM: str = 'HS256'

    # S3（スポット画像）
    S3_BUCKET_NAME: str | None = None
    S3_PUBLIC_BASE_URL: str | None = None
    MAX_FILE_SIZE: int = 10 * 1024 * 1024 # 10MB

    @computed_field
    @property
    def DATABASE_URL(self) -> PostgresDsn:
        """
        他のフィールドの値からDATABASE_URLを構築する．
        """
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @property
    def classifier_configured(self) -> bool:
        """
        外部分類器へ問い合わせるべきかどうか．
        Roboflowのキーとモデルが揃っていれば，USE_EXTERNAL_ML_SERVICEに関わらず有効とする．
        """
        if self.ROBOFLOW_API_KEY and self.ROBOFLOW_MODEL_ID:
            return True
        return self.USE_EXTERNAL_ML_SERVICE and bool(self.ML_SERVICE_URL)

    @property
    def s3_client(self):
        """
        S3クライアントを初期化して返す．
        """
        return boto3.client('s3')

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(',') if origin.strip()]

    # システム環境変数が見つからなかった場合にココを参照
    # Dockerコンテナを起動するときエラーになるため相対パスは設定できない．
    model_config = SettingsConfigDict(
        env_file = '.env',
        env_file_encoding = 'utf-8',
        extra='ignore'
    )

@lru_cache
def get_settings() -> Settings:
    """
    Settingsインスタンスを生成し，キャッシュして返す．
    これにより，アプリ全体で単一のSettingsインスタンスが保証される．
    settings = Settings()のグローバルなインスタンスでもシングルトンは実現可能だが，依存性注入DIによる差し替え可能性が無い．
    """
    return Settings()
