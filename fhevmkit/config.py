"""Configuration for fhevmkit."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library settings, read from ``FHEVM_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FHEVM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    storage_directory: Path = Path.home() / ".fhevm"
    storage_db_name: str = "fhevm-storage"  # SQLite file stem
    storage_store_name: str = "keyval"  # table inside the database
    storage_prefix: str = "fhevm:"  # key prefix for the key file backend
    storage_keyfile_name: str = "keyfile.json"

    # Decryption signatures
    signature_duration_days: int = 365


settings = Settings()
