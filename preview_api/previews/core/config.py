from enum import Enum

from pydantic_settings import BaseSettings


class ExecutionProfile(str, Enum):
    FULL = "full"
    # Serverless / low-memory hosts: skip the cairo-rendered dense watermark
    CONSTRAINED = "constrained"


class PlaceholderPolicy(str, Enum):
    SYNTHESIZE = "synthesize"
    # Returns the unprocessed original, i.e. no watermark. Opt-in only.
    PASSTHROUGH = "passthrough"


class Settings(BaseSettings):
    # API Configuration
    api_title: str = "Preview Pipeline API"
    api_version: str = "1.0.0"
    debug: bool = False

    # --- Preview Defaults ---
    target_size_kb: int = 35
    max_dimension: int = 500
    watermark_text: str = "LOOK ESCOLAR"
    brand_text: str = "LookEscolar.com"
    deterrent_text: str = "MUESTRA - NO VÁLIDA PARA VENTA"
    generate_placeholders: bool = True
    # -----------------------------------------

    # Processing strategy
    execution_profile: ExecutionProfile = ExecutionProfile.FULL
    placeholder_policy: PlaceholderPolicy = PlaceholderPolicy.SYNTHESIZE

    # Multi-resolution variants
    variant_breakpoints: list[int] = [300, 800, 1200]
    variant_quality: int = 60

    # Storage planning
    storage_ceiling_gb: float = 1.0

    # File Upload Configuration
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    allowed_extensions: list = [".jpg", ".jpeg", ".png", ".webp"]
    concurrency_limit: int = 5

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
    }

settings = Settings()
