"""
Bills authored and reported by senators (Senado Federal).

The process search only accepts date ranges up to a year, so each senator's
period is split into windows and every window is fetched separately.
A window that fails is kept as an error fragment and counted as a warning;
the senator only fails when none of its requests succeed.
"""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from core.exceptions import ETLException, ExtractionError
from etl.consolidation import count_by, deduplicate
from etl.extractors.api_client import LegislativeApiClient
from etl.extractors.endpoints import PROCESSO_AUTORIAS, PROCESSO_RELATORIAS, SENADORES_LEGISLATURA
from etl.processor import ETLProcessor
from etl.processors.periods import date_windows, legislature_period
from schemas.etl import ExtractionFragment, ValidationResult

BILLS_COLLECTION = "congressoNacional/senadoFederal/materias"


def senator_code(entry: Dict[str, Any]) -> Optional[str]:
    ident = entry.get("IdentificacaoParlamentar", entry)
    code = ident.get("CodigoParlamentar") or ident.get("codigo")
    return str(code) if code is not None else None


def bill_id(item: Dict[str, Any]) -> Optional[str]:
    for key in ("codigoMateria", "CodigoMateria", "id", "idProcesso"):
        value = item.get(key)
        if value not in (None, ""):
            return str(value)
    return None


class MateriasProcessor(ETLProcessor):
    """Authorships and rapporteurships of every senator in a legislature"""

    def __init__(self, options, client: LegislativeApiClient, **kwargs):
        super().__init__(options, **kwargs)
        self.client = client

    def get_process_name(self) -> str:
        return "Bills processor (Senado Federal)"

    async def validate(self) -> ValidationResult:
        result = self.validate_common_params()
        if self.options.legislatura is None:
            result = result.merge(ValidationResult(valid=False, errors=["Legislature is required"]))
        return result

    def period(self, today: Optional[date] = None) -> Tuple[date, date]:
        """Date range searched for each senator"""
        today = today or date.today()
        opts = self.options
        leg_start, leg_end = legislature_period(opts.legislatura)

        if opts.incremental:
            end = opts.data_fim or today
            start = opts.data_inicio or end - timedelta(days=self.context.settings.INCREMENTAL_WINDOW_DAYS)
            return start, end

        start = opts.data_inicio or leg_start
        end = opts.data_fim or min(leg_end, today)
        return start, end

    # ------------------------------------------------------------------
    # Extract
    # ------------------------------------------------------------------

    async def _list_senators(self) -> List[Dict[str, Any]]:
        opts = self.options
        if opts.legislator_id:
            return [{"IdentificacaoParlamentar": {"CodigoParlamentar": opts.legislator_id}}]

        data = await self.client.get(
            SENADORES_LEGISLATURA,
            {"legislatura": opts.legislatura},
            label=f"senators of legislature {opts.legislatura}",
        )
        record = self.consolidator.consolidate(
            [ExtractionFragment(source=self.client.build_path(SENADORES_LEGISLATURA, {"legislatura": opts.legislatura}), data=data)],
            key="senators",
        )
        senators = record.items if record else []

        if opts.partido or opts.uf:
            def matches(entry):
                ident = entry.get("IdentificacaoParlamentar", {})
                return (
                    (not opts.partido or ident.get("SiglaPartidoParlamentar") == opts.partido)
                    and (not opts.uf or ident.get("UfParlamentar") == opts.uf)
                )
            senators = [s for s in senators if matches(s)]

        senators = deduplicate(senators, senator_code)
        if opts.limite:
            senators = senators[:opts.limite]
        return senators

    async def _fetch_window(self, endpoint, params: Dict[str, Any], label: str) -> ExtractionFragment:
        """One date window; a failed window keeps its error instead of sinking the senator"""
        source = self.client.build_path(endpoint)
        try:
            data = await self.client.get(endpoint, params=params, label=label)
        except ETLException as e:
            self.context.logger.warning(f"No data for {label}: {e}")
            self.increment_warnings()
            return ExtractionFragment(source=source, params=params, error=str(e))
        return ExtractionFragment(source=source, params=params, data=data)

    async def _extract_senator(self, senator: Dict[str, Any]) -> Dict[str, Any]:
        code = senator_code(senator)
        if code is None:
            raise ETLException("Senator entry without a code", context={"entry": senator})

        start, end = self.period()
        windows = date_windows(start, end, self.context.settings.EXTRACTION_WINDOW_DAYS)
        self.context.logger.debug(f"Senator {code}: {len(windows)} windows from {start} to {end}")

        autorias, relatorias = [], []
        for window_start, window_end in windows:
            autorias.append(await self._fetch_window(
                PROCESSO_AUTORIAS,
                {
                    "codigoParlamentarAutor": code,
                    "dataInicioApresentacao": window_start.isoformat(),
                    "dataFimApresentacao": window_end.isoformat(),
                },
                label=f"authorships of {code} {window_start}",
            ))
            relatorias.append(await self._fetch_window(
                PROCESSO_RELATORIAS,
                {
                    "codigoParlamentar": code,
                    "dataInicio": window_start.isoformat(),
                    "dataFim": window_end.isoformat(),
                },
                label=f"rapporteurships of {code} {window_start}",
            ))

        fragments = autorias + relatorias
        if fragments and not any(f.ok for f in fragments):
            raise ExtractionError(
                f"Every request for senator {code} failed",
                context={"senator": code, "errors": [f.error for f in fragments]}
            )

        return {
            "codigo": code,
            "identificacao": senator.get("IdentificacaoParlamentar", {}),
            "autorias": autorias,
            "relatorias": relatorias,
        }

    async def extract(self) -> List[Dict[str, Any]]:
        senators = await self._list_senators()
        self.context.logger.info(f"Extracting bills of {len(senators)} senators")
        self.add_phase_total(len(senators))

        outcomes = await self.limiter.for_each_chunk(senators, self._extract_senator, label="senators")

        extracted = []
        for outcome in outcomes:
            self.increment_processed()
            if outcome.ok:
                self.increment_successes()
                extracted.append(outcome.value)
                continue

            self.increment_failures()
            error = outcome.error
            self.context.logger.error(
                f"Failed to extract bills of senator {senator_code(outcome.item)}: {error}",
                extra={"error_context": error.to_dict() if isinstance(error, ETLException) else {"error": str(error)}}
            )
        return extracted

    # ------------------------------------------------------------------
    # Transform
    # ------------------------------------------------------------------

    async def transform(self, extracted: List[Dict[str, Any]]) -> Dict[str, Any]:
        self.add_phase_total(len(extracted))
        documents = []
        totals = {"autorias": 0, "relatorias": 0}

        for senator in sorted(extracted, key=lambda s: s["codigo"]):
            code = senator["codigo"]
            autorias_record = self.consolidator.consolidate(senator["autorias"], key=f"{code}/autorias")
            relatorias_record = self.consolidator.consolidate(senator["relatorias"], key=f"{code}/relatorias")

            autorias = deduplicate(autorias_record.items if autorias_record else [], bill_id)
            relatorias = deduplicate(relatorias_record.items if relatorias_record else [], bill_id)
            totals["autorias"] += len(autorias)
            totals["relatorias"] += len(relatorias)

            ident = senator["identificacao"]
            documents.append((BILLS_COLLECTION, code, {
                "codigo": code,
                "nome": ident.get("NomeParlamentar"),
                "partido": ident.get("SiglaPartidoParlamentar"),
                "uf": ident.get("UfParlamentar"),
                "autorias": autorias,
                "relatorias": relatorias,
                "estatisticas": {
                    "totalAutorias": len(autorias),
                    "totalRelatorias": len(relatorias),
                    "autoriasPorTipo": count_by(autorias, "siglaTipoMateria"),
                },
            }))
            self.increment_successes()

        summary = {"senadores": len(documents), **totals}
        documents.append((BILLS_COLLECTION, f"metadata_legislatura_{self.options.legislatura}", {
            "legislatura": self.options.legislatura,
            "estatisticas": summary,
        }))
        self.context.logger.info(
            f"Transformed {totals['autorias']} authorships and {totals['relatorias']} rapporteurships"
        )
        return {"documents": documents, "summary": summary}

    async def load(self, transformed: Dict[str, Any]) -> Dict[str, Any]:
        result = await self.load_documents(transformed["documents"])
        result["summary"] = transformed["summary"]
        return result
