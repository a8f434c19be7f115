# SPDX-License-Identifier: Apache-2.0

"""
Grant (concessão) domain logic.

This module contains pure functions for the grant status state machine,
per-operation preconditions, installment planning and pagination rules.
Nothing here touches persistence; services call these functions and act
on the returned ValidationResult.
"""

import calendar
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Tuple

from models.entities import Concessao, EstatisticasParcelas, Pagamento, Solicitacao, TipoBeneficio
from models.enums import (
    StatusConcessao,
    StatusPagamento,
    Periodicidade,
    MESES_POR_PERIODICIDADE
)


DEFAULT_LIMIT = 100
MAX_LIMIT = 1000

MOTIVO_ENCERRAMENTO_AUTOMATICO = "Encerramento automático - todos os pagamentos liberados"
MOTIVO_CESSACAO_AUTOMATICA = "Cessação automática - todas as parcelas confirmadas"
MOTIVO_PRORROGACAO_JUDICIAL = "Prorrogação por determinação judicial"
MOTIVO_PRORROGACAO = "Prorrogação de concessão anterior"

# Installments in these statuses are left untouched when a grant is cancelled
PAGAMENTOS_NAO_CANCELAVEIS = (StatusPagamento.CANCELADO, StatusPagamento.CONFIRMADO)

VALID_TRANSITIONS: Dict[StatusConcessao, FrozenSet[StatusConcessao]] = {
    StatusConcessao.APTO: frozenset({
        StatusConcessao.ATIVO,
        StatusConcessao.CANCELADO,
        StatusConcessao.SUSPENSO,
        StatusConcessao.BLOQUEADO
    }),
    StatusConcessao.ATIVO: frozenset({
        StatusConcessao.SUSPENSO,
        StatusConcessao.BLOQUEADO,
        StatusConcessao.CESSADO,
        StatusConcessao.CANCELADO
    }),
    StatusConcessao.SUSPENSO: frozenset({
        StatusConcessao.ATIVO,
        StatusConcessao.BLOQUEADO,
        StatusConcessao.CANCELADO
    }),
    StatusConcessao.BLOQUEADO: frozenset({
        StatusConcessao.ATIVO,
        StatusConcessao.CANCELADO
    }),
    StatusConcessao.CESSADO: frozenset({StatusConcessao.ATIVO}),
    StatusConcessao.CANCELADO: frozenset(),  # Terminal state
}


@dataclass
class ValidationResult:
    """Result of a grant precondition check."""
    is_valid: bool
    errors: List[str]
    warnings: List[str] = None

    def __post_init__(self):
        if self.warnings is None:
            self.warnings = []

    @property
    def message(self) -> str:
        return "; ".join(self.errors)


def _result(errors: List[str], warnings: Optional[List[str]] = None) -> ValidationResult:
    return ValidationResult(is_valid=len(errors) == 0, errors=errors, warnings=warnings)


def parse_status(value) -> Optional[StatusConcessao]:
    """
    Coerce a raw value into a StatusConcessao.

    Args:
        value: Enum member or its string value

    Returns:
        StatusConcessao, or None if the value is not a recognized status
    """
    try:
        return StatusConcessao(value)
    except ValueError:
        return None


def is_valid_status_transition(current_status, new_status) -> bool:
    """Check the transition table for a source/target pair."""
    current = parse_status(current_status)
    target = parse_status(new_status)
    if current is None or target is None:
        return False
    return target in VALID_TRANSITIONS.get(current, frozenset())


def validate_status_transition(current_status, new_status) -> ValidationResult:
    """
    Validate grant status transition.

    Args:
        current_status: Current grant status
        new_status: Desired new status

    Returns:
        ValidationResult with validation status and errors
    """
    errors = []

    if parse_status(new_status) is None:
        errors.append(f"Invalid status: {new_status}")
    elif not is_valid_status_transition(current_status, new_status):
        errors.append(
            f"Invalid status transition from {_value(current_status)} to {_value(new_status)}"
        )

    return _result(errors)


def _value(status) -> str:
    return status.value if isinstance(status, StatusConcessao) else str(status)


def _require_motivo(motivo: Optional[str], errors: List[str]) -> None:
    if not motivo or not motivo.strip():
        errors.append("A reason is required for this operation")


def validate_suspensao(concessao: Concessao, motivo: Optional[str]) -> ValidationResult:
    """Only active grants can be suspended, and a reason is mandatory."""
    errors = []
    if concessao.status != StatusConcessao.ATIVO:
        errors.append(f"Only active grants can be suspended (current status: {concessao.status})")
    _require_motivo(motivo, errors)
    return _result(errors)


def validate_bloqueio(concessao: Concessao, motivo: Optional[str]) -> ValidationResult:
    """Blocking follows the transition table and requires a reason."""
    errors = []
    if not is_valid_status_transition(concessao.status, StatusConcessao.BLOQUEADO):
        errors.append(f"Grant cannot be blocked (current status: {concessao.status})")
    _require_motivo(motivo, errors)
    return _result(errors)


def validate_desbloqueio(concessao: Concessao, motivo: Optional[str]) -> ValidationResult:
    """Only blocked grants can be unblocked."""
    errors = []
    if concessao.status != StatusConcessao.BLOQUEADO:
        errors.append(f"Only blocked grants can be unblocked (current status: {concessao.status})")
    _require_motivo(motivo, errors)
    return _result(errors)


def validate_reativacao(concessao: Concessao, motivo: Optional[str]) -> ValidationResult:
    """Only suspended or ceased grants can be reactivated."""
    errors = []
    if concessao.status not in (StatusConcessao.SUSPENSO, StatusConcessao.CESSADO):
        errors.append(
            f"Only suspended or ceased grants can be reactivated (current status: {concessao.status})"
        )
    _require_motivo(motivo, errors)
    return _result(errors)


def validate_cancelamento(concessao: Concessao, motivo: Optional[str]) -> ValidationResult:
    """Only active grants can be cancelled."""
    errors = []
    if concessao.status != StatusConcessao.ATIVO:
        errors.append(f"Only active grants can be cancelled (current status: {concessao.status})")
    _require_motivo(motivo, errors)
    return _result(errors)


def validate_prorrogacao(
    concessao: Concessao,
    solicitacao: Solicitacao,
    concessoes_da_solicitacao: int,
    documento_judicial_id: Optional[str] = None
) -> ValidationResult:
    """
    Validate the preconditions of a prorogation that do not depend on
    the benefit type or on the original installments.

    Args:
        concessao: Grant being prorogated
        solicitacao: Originating request
        concessoes_da_solicitacao: Number of grants already linked to the request
        documento_judicial_id: Judicial document supplied with the prorogation

    Returns:
        ValidationResult with validation status and errors
    """
    errors = []

    if concessao.status != StatusConcessao.CESSADO:
        errors.append(f"Only ceased grants can be prorogated (current status: {concessao.status})")
        return _result(errors)

    if solicitacao.determinacao_judicial_flag:
        if not documento_judicial_id and not solicitacao.determinacao_judicial_id:
            errors.append("A judicial document is required to prorogate a court-ordered grant")
    elif concessoes_da_solicitacao > 1:
        errors.append("Grant was already prorogated once; prorogation limit reached")

    return _result(errors)


def validate_periodicidade_prorrogacao(solicitacao: Solicitacao, tipo_beneficio: TipoBeneficio) -> ValidationResult:
    """One-time benefits can only be prorogated by court order."""
    errors = []
    if not solicitacao.determinacao_judicial_flag and tipo_beneficio.periodicidade == Periodicidade.UNICO:
        errors.append("One-time benefits cannot be prorogated without a judicial determination")
    return _result(errors)


def add_months(data: datetime, meses: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length."""
    month_index = data.month - 1 + meses
    year = data.year + month_index // 12
    month = month_index % 12 + 1
    day = min(data.day, calendar.monthrange(year, month)[1])
    return data.replace(year=year, month=month, day=day)


def calcular_data_encerramento(data_inicio: datetime, tipo_beneficio: Optional[TipoBeneficio]) -> Optional[datetime]:
    """End date from the benefit type's maximum duration, if it has one."""
    if not tipo_beneficio or not tipo_beneficio.especificacoes:
        return None
    duracao = tipo_beneficio.especificacoes.duracao_maxima_meses
    if not duracao:
        return None
    return add_months(data_inicio, duracao)


def meses_entre_parcelas(periodicidade) -> int:
    return MESES_POR_PERIODICIDADE[Periodicidade(periodicidade)]


def calcular_quantidade_parcelas(tipo_beneficio: Optional[TipoBeneficio], quantidade_parcelas: Optional[int] = None) -> int:
    """
    Number of installments to generate for a grant.

    An explicit count wins; otherwise the benefit type's fixed count, then
    its maximum duration divided by the periodicity step, then a single
    installment.
    """
    if quantidade_parcelas:
        return quantidade_parcelas
    if not tipo_beneficio:
        return 1

    especificacoes = tipo_beneficio.especificacoes
    if especificacoes and especificacoes.quantidade_parcelas:
        return especificacoes.quantidade_parcelas

    passo = meses_entre_parcelas(tipo_beneficio.periodicidade)
    if especificacoes and especificacoes.duracao_maxima_meses and passo:
        return max(1, especificacoes.duracao_maxima_meses // passo)

    return 1


def calcular_datas_parcelas(data_inicio: datetime, periodicidade, quantidade: int) -> List[datetime]:
    """Scheduled release dates, one periodicity step apart."""
    passo = meses_entre_parcelas(periodicidade)
    return [add_months(data_inicio, passo * indice) for indice in range(quantidade)]


def deve_encerrar_automaticamente(concessao: Concessao, pagamentos: List[Pagamento]) -> bool:
    """
    Whether an active grant should be closed because every installment
    was released. Grants without installments are never closed.
    """
    if concessao.status != StatusConcessao.ATIVO:
        return False
    if not pagamentos:
        return False
    return all(pagamento.status == StatusPagamento.LIBERADO for pagamento in pagamentos)


def pode_ser_cessada(concessao: Concessao, pagamentos: List[Pagamento]) -> bool:
    """
    Whether an active grant should cease because every installment was
    confirmed as received by the beneficiary.
    """
    if concessao.status != StatusConcessao.ATIVO:
        return False
    if not pagamentos:
        return False
    return all(pagamento.status == StatusPagamento.CONFIRMADO for pagamento in pagamentos)


def is_ultima_parcela(pagamento: Pagamento, pagamentos: List[Pagamento]) -> bool:
    """Whether the installment carries the highest number among the grant's installments."""
    if not pagamentos:
        return False
    return pagamento.numero_parcela == max(item.numero_parcela for item in pagamentos)


def calcular_estatisticas(pagamentos: List[Pagamento]) -> EstatisticasParcelas:
    """Installment progress; an installment is done once its receipt is confirmed."""
    total = len(pagamentos)
    liberadas = sum(1 for pagamento in pagamentos if pagamento.status == StatusPagamento.LIBERADO)
    confirmadas = sum(1 for pagamento in pagamentos if pagamento.status == StatusPagamento.CONFIRMADO)
    percentual = round(confirmadas * 100 / total) if total else 0
    return EstatisticasParcelas(
        total=total,
        liberadas=liberadas,
        confirmadas=confirmadas,
        pendentes=total - confirmadas,
        percentual_concluido=percentual
    )


def resolve_pagination(limit: Optional[int], offset: Optional[int], page: Optional[int]) -> Tuple[int, int]:
    """
    Resolve listing pagination.

    Returns:
        Tuple of (limit, offset)

    Raises:
        ValueError: If limit or page are not positive
    """
    if limit is None:
        limit = DEFAULT_LIMIT
    if limit <= 0:
        raise ValueError("limit must be greater than zero")
    limit = min(limit, MAX_LIMIT)

    if page is not None:
        if page <= 0:
            raise ValueError("page must be greater than zero")
        offset = (page - 1) * limit

    return limit, max(offset or 0, 0)
