"""
Board compositions of the Federal Senate and of the National Congress.
"""

from typing import Any, Dict, List

from etl.extractors.api_client import LegislativeApiClient
from etl.extractors.endpoints import MESA_CONGRESSO, MESA_SENADO
from etl.processor import ETLProcessor
from schemas.etl import ExtractionFragment

BOARDS_COLLECTION = "congressoNacional/senadoFederal/mesas"

BOARDS = {
    "senado": MESA_SENADO,
    "congresso": MESA_CONGRESSO,
}


def normalize_member(entry: Dict[str, Any]) -> Dict[str, Any]:
    ident = entry.get("IdentificacaoParlamentar", {})
    return {
        "cargo": entry.get("Cargo") or entry.get("NomeCargo") or entry.get("DescricaoCargo"),
        "codigo": str(ident.get("CodigoParlamentar") or entry.get("CodigoParlamentar") or ""),
        "nome": ident.get("NomeParlamentar") or entry.get("NomeParlamentar"),
        "partido": ident.get("SiglaPartidoParlamentar") or entry.get("SiglaPartido"),
        "uf": ident.get("UfParlamentar") or entry.get("SiglaUf"),
    }


class MesasProcessor(ETLProcessor):
    """Current boards; legislature filters do not apply"""

    def __init__(self, options, client: LegislativeApiClient, **kwargs):
        super().__init__(options, **kwargs)
        self.client = client

    def get_process_name(self) -> str:
        return "Boards processor (Senado Federal / Congresso Nacional)"

    async def extract(self) -> List[ExtractionFragment]:
        self.add_phase_total(len(BOARDS))
        fragments = []

        for name, endpoint in BOARDS.items():
            self.increment_processed()
            outcome = await self.client.fetch(endpoint, label=f"board {name}")
            if not outcome.found:
                self.context.logger.warning(f"Board {name} not published upstream")
                self.increment_warnings()
                continue
            fragments.append(ExtractionFragment(
                source=outcome.endpoint,
                data=outcome.data,
                metadata={"mesa": name},
            ))
            self.increment_successes()

        return fragments

    async def transform(self, fragments: List[ExtractionFragment]) -> Dict[str, Any]:
        self.add_phase_total(len(fragments))
        documents = []

        for fragment in fragments:
            name = fragment.metadata["mesa"]
            record = self.consolidator.consolidate([fragment], key=name)
            if record is None:
                self.increment_failures()
                continue

            members = [normalize_member(m) for m in record.items if isinstance(m, dict)]
            documents.append((BOARDS_COLLECTION, name, {
                "mesa": name,
                "membros": members,
                "totalMembros": len(members),
            }))
            self.increment_successes()

        return {"documents": documents, "summary": {"mesas": len(documents)}}

    async def load(self, transformed: Dict[str, Any]) -> Dict[str, Any]:
        result = await self.load_documents(transformed["documents"])
        result["summary"] = transformed["summary"]
        return result
