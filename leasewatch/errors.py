class ConfigurationError(ValueError):
    """Невалидная конфигурация: пул, резервации, MAC/IP, шаблоны ссылок, epoch."""


class HistoryStoreError(RuntimeError):
    """Ошибка ввода-вывода в базе истории клиентов (tracker DB)."""
