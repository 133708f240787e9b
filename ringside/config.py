import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Simulation engine configuration settings"""

    # Database settings
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///ringside.db')

    # Runtime settings
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
    LOG_DIR = os.getenv('LOG_DIR', 'logs')

    # Discord webhook for show results (optional)
    DISCORD_WEBHOOK_URL = os.getenv('DISCORD_WEBHOOK_URL', '')
    WEBHOOK_USERNAME = os.getenv('WEBHOOK_USERNAME', 'Wrestling Simulator')

    # Economy settings
    STARTING_COMPANY_MONEY = 100000
    STARTING_COMPANY_POPULARITY = 1
    DEFAULT_TICKET_PRICE = 20

    # Championship popularity boosts (applied by the operations layer)
    TITLE_WIN_POPULARITY_BOOST = 5
    TITLE_DEFENSE_POPULARITY_BOOST = 2

    @classmethod
    def get_database_url(cls, database_url: str = None) -> str:
        """Get the database URL with an async driver for sqlite"""
        database_url = database_url or cls.DATABASE_URL
        if database_url.startswith('sqlite:///'):
            database_url = database_url.replace('sqlite:///', 'sqlite+aiosqlite:///')
        return database_url

    @classmethod
    def validate(cls):
        """Validate that configuration values are well formed"""
        if not cls.DATABASE_URL:
            raise ValueError("DATABASE_URL is required")
        if cls.DISCORD_WEBHOOK_URL and not cls.DISCORD_WEBHOOK_URL.startswith(('http://', 'https://')):
            raise ValueError("DISCORD_WEBHOOK_URL must be an http(s) URL")
        if cls.DEFAULT_TICKET_PRICE < 0:
            raise ValueError("DEFAULT_TICKET_PRICE cannot be negative")
