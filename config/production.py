import os

from config.config import Config

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = Config.db_config()

SCHOOL_TIMEZONE = Config.SCHOOL_TIMEZONE
POLL_INTERVAL_SECONDS = Config.POLL_INTERVAL_SECONDS
PUBLIC_BASE_URL = Config.PUBLIC_BASE_URL
LOG_LEVEL = Config.LOG_LEVEL

DEBUG = False

AUTO_INIT_DB = Config.AUTO_INIT_DB
AUTO_SEED_DB = Config.AUTO_SEED_DB
