from .sealed import HEADER_SIZE, generate_key, load_key, open_sealed, save_key, seal

__all__ = ["HEADER_SIZE", "generate_key", "load_key", "open_sealed", "save_key", "seal"]
