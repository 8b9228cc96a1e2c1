from ..settings import Settings


class DevelopmentSettings(Settings):
    debug: bool = True
    log_level: str = "DEBUG"
    database_url: str = "duckdb://./lunchmate/data/lunchmate_dev.duckdb"


class TestingSettings(Settings):
    debug: bool = True
    database_url: str = ":memory:"
    jwt_secret_key: str = "test-secret-key"
    api_title: str = "LunchMate API (Test)"
    api_version: str = "1.0.0-test"
