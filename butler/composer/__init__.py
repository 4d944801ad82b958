from butler.composer.builder import Composer

__all__ = ["Composer"]
