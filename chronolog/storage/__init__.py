from chronolog.storage.local import LocalStore, default_store_path

__all__ = ["LocalStore", "default_store_path"]
