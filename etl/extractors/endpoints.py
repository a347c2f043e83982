"""
Endpoints used by the bundled processors.

Paths are relative to the family base URL; the Senado family appends
``.json`` to every path.
"""

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class Endpoint:
    path: str
    params: Dict[str, Any] = field(default_factory=dict)


# Senado Federal (https://legis.senado.leg.br/dadosabertos)
SENADORES_LEGISLATURA = Endpoint("/senador/lista/legislatura/{legislatura}")
SENADOR_PERFIL = Endpoint("/senador/{codigo}")
PROCESSO_AUTORIAS = Endpoint("/processo", {"v": "1"})
PROCESSO_RELATORIAS = Endpoint("/processo/relatoria")
MESA_SENADO = Endpoint("/composicao/mesaSF")
MESA_CONGRESSO = Endpoint("/composicao/mesaCN")

# Camara dos Deputados (https://dadosabertos.camara.leg.br/api/v2)
DEPUTADOS_LISTA = Endpoint(
    "/deputados",
    {"ordem": "ASC", "ordenarPor": "nome"},
)
DEPUTADO_PERFIL = Endpoint("/deputados/{codigo}")
DEPUTADO_DISCURSOS = Endpoint(
    "/deputados/{codigo}/discursos",
    {"ordenarPor": "dataHoraInicio", "ordem": "DESC"},
)
