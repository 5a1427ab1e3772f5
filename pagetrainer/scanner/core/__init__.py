"""
PageTrainer Scanner Core Components

Contains the training engine, trainer, crawler, parser and HTTP requester.
"""

from pagetrainer.scanner.core.options import ScanConfig
from pagetrainer.scanner.core.engine import TrainingEngine
from pagetrainer.scanner.core.crawler import AsyncCrawler
from pagetrainer.scanner.core.requester import AsyncRequester
from pagetrainer.scanner.core.parser import ResponseParser
from pagetrainer.scanner.core.trainer import Trainer, TrainingOutcome, TrainingResult

__all__ = [
    'ScanConfig', 'TrainingEngine', 'AsyncCrawler', 'AsyncRequester',
    'ResponseParser', 'Trainer', 'TrainingOutcome', 'TrainingResult'
]
