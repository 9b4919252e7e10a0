import logging

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

def setup_logging(level: str = 'INFO') -> None:
    """
    アプリ全体のロギングを一度だけ設定する．
    各モジュールは logger = logging.getLogger(__name__) で取得したロガーを使う．
    """
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)

    # SQLAlchemyのSQLログはDEBUG時のみ出す．
    if level.upper() != 'DEBUG':
        logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
