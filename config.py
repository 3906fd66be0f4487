import os
import sys
from dataclasses import dataclass

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

APP_ID = 'bullying-analyzer-v1'

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{module}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def _env_flag(name, default):
    value = os.environ.get(name)
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class Settings:
    openai_api_key: str = None
    openai_model: str = 'gpt-4o-mini'
    azure_openai_endpoint: str = None
    azure_openai_api_version: str = '2024-12-01-preview'
    database_url: str = None
    secret_key: str = 'dev-secret-key-change-me'
    app_id: str = APP_ID
    persist_failure_is_error: bool = True
    log_level: str = 'INFO'
    log_file: str = None
    host: str = '0.0.0.0'
    port: int = 8000
    debug: bool = False

    @classmethod
    def from_env(cls):
        return cls(
            openai_api_key=os.environ.get('OPENAI_API_KEY') or os.environ.get('API_KEY') or None,
            openai_model=os.environ.get('OPENAI_MODEL', 'gpt-4o-mini'),
            azure_openai_endpoint=os.environ.get('AZURE_OPENAI_ENDPOINT') or None,
            azure_openai_api_version=os.environ.get('AZURE_OPENAI_API_VERSION', '2024-12-01-preview'),
            database_url=os.environ.get('DATABASE_URL') or None,
            secret_key=os.environ.get('SECRET_KEY', 'dev-secret-key-change-me'),
            app_id=os.environ.get('APP_ID', APP_ID),
            persist_failure_is_error=_env_flag('PERSIST_FAILURE_IS_ERROR', True),
            log_level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
            log_file=os.environ.get('LOG_FILE') or None,
            host=os.environ.get('HOST', '0.0.0.0'),
            port=int(os.environ.get('PORT', 8000)),
            debug=_env_flag('FLASK_DEBUG', False),
        )

    @property
    def backend_configured(self):
        """True when a shared store is available; otherwise the app runs in demo mode."""
        return bool(self.database_url)

    @property
    def searches_path(self):
        return f'artifacts/{self.app_id}/public/data/searches'


def setup_logging(settings):
    logger.remove()
    logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level=settings.log_level,
        backtrace=settings.debug,
        diagnose=settings.debug,
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            format=LOG_FORMAT,
            level=settings.log_level,
            rotation='1 day',
            retention='30 days',
            backtrace=False,
            diagnose=False,
        )
