"""
Settings for the TurnoFácil scheduling API

Every labour-rule threshold can be overridden from the environment or a
.env file. Defaults follow Colombian labour law. Validation is lazy:
create_app only validates the production class.
"""
import secrets
from decouple import UndefinedValueError, config
from typing import Optional

MIN_SECRET_KEY_LENGTH = 32


class Config:
    """Settings shared by every environment"""
    # A fresh key per process is enough outside production
    SECRET_KEY = config('SECRET_KEY', default=secrets.token_hex(32))
    JSON_SORT_KEYS = False

    LOG_LEVEL = config('LOG_LEVEL', default='INFO')
    LOG_FILE = config('LOG_FILE', default='logs/turnofacil.log')

    # Working time
    MAX_WEEKLY_HOURS = config('MAX_WEEKLY_HOURS', default=48, cast=float)
    MAX_CONSECUTIVE_HOURS = config('MAX_CONSECUTIVE_HOURS', default=12, cast=float)
    MIN_REST_BETWEEN_SHIFTS = config('MIN_REST_BETWEEN_SHIFTS', default=12, cast=float)
    MAX_CONSECUTIVE_WORK_DAYS = config('MAX_CONSECUTIVE_WORK_DAYS', default=6, cast=int)

    # Budget and staffing
    BUDGET_WARNING_THRESHOLD = config('BUDGET_WARNING_THRESHOLD', default=85, cast=float)
    MIN_STAFFING_PER_DAY = config('MIN_STAFFING_PER_DAY', default=2, cast=int)
    WEEKLY_BUDGET_LIMIT = config('WEEKLY_BUDGET_LIMIT', default=0, cast=float)  # 0 = not configured

    ENFORCE_AVAILABILITY = config('ENFORCE_AVAILABILITY', default=True, cast=bool)
    ENFORCE_REST_DAYS = config('ENFORCE_REST_DAYS', default=True, cast=bool)
    ENFORCE_BUDGET_LIMITS = config('ENFORCE_BUDGET_LIMITS', default=True, cast=bool)

    # Seconds a filtered request view stays cached
    QUERY_CACHE_TTL = config('QUERY_CACHE_TTL', default=300, cast=int)

    @classmethod
    def validate(cls) -> None:
        """
        Check that the rule thresholds are usable.

        Raises:
            ValueError: Naming the first setting out of range
        """
        problems = []
        if cls.MAX_WEEKLY_HOURS <= 0:
            problems.append("MAX_WEEKLY_HOURS must be positive")
        if cls.MAX_CONSECUTIVE_HOURS <= 0:
            problems.append("MAX_CONSECUTIVE_HOURS must be positive")
        if cls.MIN_REST_BETWEEN_SHIFTS < 0:
            problems.append("MIN_REST_BETWEEN_SHIFTS cannot be negative")
        if not 1 <= cls.MAX_CONSECUTIVE_WORK_DAYS <= 7:
            problems.append("MAX_CONSECUTIVE_WORK_DAYS must be between 1 and 7")
        if not 0 < cls.BUDGET_WARNING_THRESHOLD <= 100:
            problems.append("BUDGET_WARNING_THRESHOLD must be a percentage between 0 and 100")
        if cls.MIN_STAFFING_PER_DAY < 0:
            problems.append("MIN_STAFFING_PER_DAY cannot be negative")
        if cls.WEEKLY_BUDGET_LIMIT < 0:
            problems.append("WEEKLY_BUDGET_LIMIT cannot be negative")
        if cls.QUERY_CACHE_TTL <= 0:
            problems.append("QUERY_CACHE_TTL must be positive")
        if problems:
            raise ValueError(problems[0])


class DevelopmentConfig(Config):
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    TESTING = True
    LOG_LEVEL = 'WARNING'
    LOG_FILE = 'logs/turnofacil-test.log'
    # Tests pass explicit budgets
    WEEKLY_BUDGET_LIMIT = 0


class ProductionConfig(Config):
    """Production refuses to start without a real SECRET_KEY"""
    DEBUG = False
    TESTING = False
    LOG_LEVEL = config('LOG_LEVEL', default='WARNING')

    @classmethod
    def validate(cls) -> None:
        super().validate()

        try:
            secret_key = config('SECRET_KEY')
        except UndefinedValueError:
            raise ValueError("SECRET_KEY must be set in the environment for production")

        if len(secret_key) < MIN_SECRET_KEY_LENGTH:
            raise ValueError(
                f"SECRET_KEY must be at least {MIN_SECRET_KEY_LENGTH} characters in production "
                f"(got {len(secret_key)})"
            )


config_mapping = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config(config_name: Optional[str] = None, validate: bool = False) -> type:
    """
    Resolve the settings class for an environment.

    Args:
        config_name: 'development', 'testing' or 'production'; read from
            FLASK_ENV when omitted. Unknown names fall back to development.
        validate: Run the class's validate() before returning it

    Raises:
        ValueError: If validation is requested and a setting is unusable
    """
    if config_name is None:
        config_name = config('FLASK_ENV', default='development')

    config_class = config_mapping.get(config_name, DevelopmentConfig)
    if validate:
        config_class.validate()
    return config_class
