"""Butler — сборка, настройка и запуск Jenkins из декларативных файлов."""

__version__ = "0.1.0"
