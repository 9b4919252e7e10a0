import sys
from pathlib import Path
from logging.config import fileConfig

from sqlalchemy import engine_from_config
from sqlalchemy import pool

from alembic import context

# backend/ をPythonの検索パスに追加（パッケージ未インストールでも動かすため）
sys.path.append(str(Path(__file__).resolve().parent.parent))

# 接続先は.iniではなく，Settings（環境変数・.env）から組み立てる．
from sk8spot.core.config import get_settings
settings = get_settings()

# sk8spot/db/base.py が全てのモデルをインポートしている．
from sk8spot.db import base

config = context.config
config.set_main_option("sqlalchemy.url", str(settings.DATABASE_URL))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = base.Base.metadata

def include_object(object, name, type_, reflected, compare_to):
    """
    autogenerateの監視対象を，自分のモデルのテーブルに限定する．
    PostGIS拡張が作るテーブル（spatial_ref_sysなど）を削除対象と誤認させない．
    """
    if type_ == "table":
        return name == 'alembic_version' or name in target_metadata.tables
    return True

def run_migrations_offline() -> None:
    """
    DBに接続せず，SQLを出力するだけのモード．
    """
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        include_object=include_object,
    )

    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            include_object=include_object
        )

        with context.begin_transaction():
            context.run_migrations()

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
