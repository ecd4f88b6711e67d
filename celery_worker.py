"""
Celery entry point at the project root:

    $ celery -A celery_worker worker --beat -Q celery,maintenance,data_ingestion --loglevel=info
"""

from sports_predictions.workers.celery_app import celery_app

app = celery_app
