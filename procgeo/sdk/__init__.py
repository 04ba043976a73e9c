from .run import GenerationResult, generate_from_config

__all__ = ["GenerationResult", "generate_from_config"]
