"""Вспомогательные модули.

Содержит утилиты для:
- Логирования (logging.py)
- Работы с временными зонами и метками времени (timezone.py)
"""
