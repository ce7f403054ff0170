# migrations/env.py
from alembic import context
from sqlalchemy import engine_from_config, pool

# (1) carregar .env
from dotenv import load_dotenv
load_dotenv()

from certdesk.db.base import Base
import certdesk.models  # noqa: F401  registra as tabelas no metadata
from certdesk.db.session import SQLALCHEMY_DATABASE_URL

config = context.config

# (2) Alembic usará a mesma URL (já normalizada) da aplicação
config.set_main_option("sqlalchemy.url", SQLALCHEMY_DATABASE_URL.replace("%", "%%"))

target_metadata = Base.metadata

def run_migrations_offline():
    url = config.get_main_option("sqlalchemy.url")
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True, render_as_batch=True)
    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online():
    connectable = engine_from_config(config.get_section(config.config_ini_section), prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        # batch mode: sqlite não faz ALTER de constraints
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
