"""Вспомогательные утилиты: docker, аутентификация Jenkins, YAML."""
