from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path.home() / ".pdfstamp"
    # Matches the JSON body limit of the upload endpoint.
    max_upload_bytes: int = 50 * 1024 * 1024  # 50 MiB
    host: str = "127.0.0.1"
    port: int = 5000
    log_level: str = "info"

    model_config = {"env_prefix": "PDFSTAMP_"}
