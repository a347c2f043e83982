"""
Concrete processors built on ETLProcessor.

Modules:
    materias: Bills authored and reported by senators
    mesas: Senate and Congress boards
    discursos_deputados: Speeches of Camara deputies
    periods: Legislature calendar and date windows
"""

from etl.processors.discursos_deputados import DiscursosDeputadosProcessor
from etl.processors.materias import MateriasProcessor
from etl.processors.mesas import MesasProcessor

__all__ = [
    "DiscursosDeputadosProcessor",
    "MateriasProcessor",
    "MesasProcessor",
]
