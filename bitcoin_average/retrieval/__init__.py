"""Загрузка исторических курсов биткоина из внешнего API.

Состоит из:
- config: конфигурация API и параметров загрузки
- api_clients: один запрос к внешнему API и классификация ответа
- backoff: экспоненциальная задержка между повторами
- collector: потокобезопасное хранилище собранных записей
- task: повторяющиеся попытки загрузки одного дня
- pool: пул потоков с общим дедлайном и отменой
- aggregator: среднее по собранным курсам
- updater: координатор загрузки за последние N дней
"""
