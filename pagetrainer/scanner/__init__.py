"""
PageTrainer Scanner

Discovery scan engine with crawler, trainer and HTTP requester.
"""

from pagetrainer.scanner.core.engine import TrainingEngine
from pagetrainer.scanner.core.crawler import AsyncCrawler
from pagetrainer.scanner.core.requester import AsyncRequester
from pagetrainer.scanner.core.trainer import Trainer

__all__ = ['TrainingEngine', 'AsyncCrawler', 'AsyncRequester', 'Trainer']
