"""
Deputy speeches (Camara dos Deputados).

Extract: list the deputies of a legislature, then every deputy's speeches
Transform: consolidate per deputy, de-duplicate, normalize each speech
Load: one document per speech, one summary per deputy, one run metadata doc
"""

import hashlib
import json
from datetime import date, timedelta
from typing import Any, Dict, List

from core.exceptions import ETLException
from etl.concurrency import failed
from etl.consolidation import count_by, deduplicate
from etl.extractors.api_client import LegislativeApiClient
from etl.extractors.endpoints import DEPUTADO_DISCURSOS, DEPUTADO_PERFIL, DEPUTADOS_LISTA
from etl.pagination import default_max_pages
from etl.processor import ETLProcessor
from schemas.etl import ConsolidatedRecord, ExtractionFragment, ValidationResult

SPEECHES_COLLECTION = "congressoNacional/camaraDeputados/discursos"


def speech_id(raw: Dict[str, Any]) -> str:
    """Upstream id when present, otherwise a stable hash of the speech"""
    if raw.get("id") not in (None, ""):
        return str(raw["id"])
    digest = hashlib.sha1(
        json.dumps(raw, sort_keys=True, ensure_ascii=False, default=str).encode("utf-8")
    )
    return digest.hexdigest()[:20]


def split_keywords(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, list):
        return [k for k in value if isinstance(k, str) and k]
    if isinstance(value, str):
        return [k.strip() for k in value.split(",") if k.strip()]
    return []


def transform_speech(raw: Dict[str, Any], deputado_id: str) -> Dict[str, Any]:
    started = raw.get("dataHoraInicio") or raw.get("dataHora") or ""
    fase = raw.get("faseEvento")
    evento = raw.get("evento") or {}

    return {
        "id": speech_id(raw),
        "idDeputado": deputado_id,
        "dataHoraInicio": started,
        "dataHoraFim": raw.get("dataHoraFim") or "",
        "tipoDiscurso": raw.get("tipoDiscurso") or raw.get("tipo") or "",
        "sumario": raw.get("sumario") or raw.get("descricao") or "",
        "transcricao": raw.get("transcricao") or raw.get("textoDiscurso") or "",
        "palavrasChave": split_keywords(raw.get("keywords") or raw.get("palavrasChave")),
        "faseEvento": fase.get("titulo", "") if isinstance(fase, dict) else (fase or ""),
        "codEvento": str(raw.get("codEvento") or evento.get("id") or ""),
        "urlAudio": raw.get("urlAudio") or "",
        "urlTexto": raw.get("urlTexto") or raw.get("uriTexto") or "",
        "anoDiscurso": int(started[:4]) if started[:4].isdigit() else 0,
    }


class DiscursosDeputadosProcessor(ETLProcessor):
    """
    Speeches of every deputy in a legislature.

    A deputy whose profile lookup returns 404 is still extracted through a
    single unpaginated request and counted as a warning. Malformed speeches
    are dropped with a warning; the deputy still counts as transformed.
    """

    def __init__(self, options, client: LegislativeApiClient, **kwargs):
        super().__init__(options, **kwargs)
        self.client = client
        self.records: Dict[str, ConsolidatedRecord] = {}

    def get_process_name(self) -> str:
        return "Deputy speeches processor (Camara dos Deputados)"

    async def validate(self) -> ValidationResult:
        result = self.validate_common_params()
        if self.options.legislatura is None and not self.options.legislator_id:
            result = result.merge(ValidationResult(
                valid=False, errors=["Legislature is required unless a deputy id is given"]
            ))
        return result

    # ------------------------------------------------------------------
    # Extract
    # ------------------------------------------------------------------

    def _speech_params(self) -> Dict[str, Any]:
        opts = self.options
        start, end = opts.data_inicio, opts.data_fim
        if opts.incremental and start is None:
            end = end or date.today()
            start = end - timedelta(days=self.context.settings.INCREMENTAL_WINDOW_DAYS)
        return {
            "idLegislatura": opts.legislatura,
            "dataInicio": start.isoformat() if start else None,
            "dataFim": end.isoformat() if end else None,
        }

    async def _list_deputies(self) -> List[Dict[str, Any]]:
        opts = self.options
        if opts.legislator_id:
            return [{"id": opts.legislator_id}]

        deputies = await self.client.get_all_pages(
            DEPUTADOS_LISTA,
            params={
                "idLegislatura": opts.legislatura,
                "siglaPartido": opts.partido,
                "siglaUf": opts.uf,
            },
            context=f"deputies of legislature {opts.legislatura}",
            page_size=self.context.settings.PAGE_SIZE,
        )
        unique = deduplicate(deputies, lambda d: str(d.get("id")) if d.get("id") is not None else None)
        if opts.limite:
            unique = unique[:opts.limite]
        return unique

    async def _extract_deputy(self, deputy: Dict[str, Any]) -> ExtractionFragment:
        deputado_id = str(deputy["id"])
        params = self._speech_params()
        path_params = {"codigo": deputado_id}

        profile = await self.client.fetch(DEPUTADO_PERFIL, path_params)

        if not profile.found:
            self.context.logger.warning(
                f"Profile of deputy {deputado_id} not found, falling back to a single request"
            )
            self.increment_warnings()
            data = await self.client.get(
                DEPUTADO_DISCURSOS, path_params, params,
                label=f"speeches of deputy {deputado_id} (fallback)",
            )
        else:
            items = await self.client.get_all_pages(
                DEPUTADO_DISCURSOS,
                path_params,
                params,
                context=f"speeches of deputy {deputado_id}",
                max_pages=default_max_pages(self.options.incremental),
                page_size=self.context.settings.PAGE_SIZE,
            )
            data = {"dados": items}

        return ExtractionFragment(
            source=self.client.build_path(DEPUTADO_DISCURSOS, path_params),
            params=params,
            data=data,
            metadata={
                "deputado_id": deputado_id,
                "fallback": not profile.found,
                "perfil": (profile.data or {}).get("dados") if profile.found else None,
            },
        )

    async def extract(self) -> List[ExtractionFragment]:
        deputies = await self._list_deputies()
        self.context.logger.info(f"Extracting speeches of {len(deputies)} deputies")
        self.add_phase_total(len(deputies))

        outcomes = await self.limiter.for_each_chunk(deputies, self._extract_deputy, label="deputies")

        fragments = []
        for outcome in outcomes:
            self.increment_processed()
            if outcome.ok:
                self.increment_successes()
                fragments.append(outcome.value)
            else:
                self.increment_failures()
                deputado_id = str(outcome.item.get("id"))
                fragments.append(ExtractionFragment(
                    source=f"deputados/{deputado_id}/discursos",
                    error=outcome.error_message,
                    metadata={"deputado_id": deputado_id},
                ))

        for outcome in failed(outcomes):
            error = outcome.error
            context = error.to_dict() if isinstance(error, ETLException) else {"error": str(error)}
            self.context.logger.error(
                f"Failed to extract speeches of deputy {outcome.item.get('id')}: {error}",
                extra={"error_context": context}
            )
        return fragments

    # ------------------------------------------------------------------
    # Transform
    # ------------------------------------------------------------------

    async def transform(self, fragments: List[ExtractionFragment]) -> Dict[str, Any]:
        usable = [f for f in fragments if f.ok]
        self.add_phase_total(len(usable))
        documents = []
        all_speeches = []

        for fragment in usable:
            deputado_id = fragment.metadata["deputado_id"]
            record = self.consolidator.consolidate([fragment], key=deputado_id)
            if record is None:
                self.increment_successes()
                continue
            self.records[deputado_id] = record

            speeches = []
            for raw in deduplicate(record.items, speech_id):
                try:
                    speeches.append(transform_speech(raw, deputado_id))
                except (AttributeError, TypeError, ValueError) as e:
                    # Counted per deputy in this phase; a dropped speech is a warning
                    self.context.logger.warning(f"Dropping malformed speech of deputy {deputado_id}: {e}")
                    self.increment_warnings()

            speeches.sort(key=lambda s: (s["dataHoraInicio"], s["id"]))
            for speech in speeches:
                documents.append((f"{SPEECHES_COLLECTION}/{deputado_id}/dados", speech["id"], speech))
            documents.append((SPEECHES_COLLECTION, deputado_id, {
                "idDeputado": deputado_id,
                "totalDiscursos": len(speeches),
                "porAno": count_by(speeches, "anoDiscurso"),
                "porTipo": count_by(speeches, "tipoDiscurso"),
                "perfil": fragment.metadata.get("perfil"),
            }))
            all_speeches.extend(speeches)
            self.increment_successes()

        summary = {
            "totalDiscursos": len(all_speeches),
            "deputadosComDiscursos": len(self.records),
            "porTipo": count_by(all_speeches, "tipoDiscurso"),
        }
        documents.append((SPEECHES_COLLECTION, f"metadata_legislatura_{self.options.legislatura or 'todas'}", {
            "legislatura": self.options.legislatura,
            "estatisticas": summary,
        }))

        self.context.logger.info(
            f"Transformed {summary['totalDiscursos']} speeches of {summary['deputadosComDiscursos']} deputies"
        )
        return {"documents": documents, "summary": summary}

    async def load(self, transformed: Dict[str, Any]) -> Dict[str, Any]:
        result = await self.load_documents(transformed["documents"])
        result["summary"] = transformed["summary"]
        return result
