# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the benefit grant (concessão) platform.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from .base import BaseEntity, generate_id, utcnow
from .enums import (
    StatusConcessao,
    StatusPagamento,
    Periodicidade
)


class Beneficiario(BaseModel):
    """Citizen receiving the benefit, as embedded in a request."""

    id: str = Field(..., description="Citizen identifier")
    nome: str = Field(..., min_length=1, max_length=200, description="Citizen full name")
    cpf: str = Field(..., description="Citizen CPF (digits only)")

    @field_validator('cpf')
    @classmethod
    def validate_cpf(cls, v):
        """Normalize CPF to its 11 digits."""
        digits = ''.join(ch for ch in v if ch.isdigit())
        if len(digits) != 11:
            raise ValueError('CPF must contain 11 digits')
        return digits


class EspecificacoesBeneficio(BaseModel):
    """Duration and installment specification of a benefit type."""

    duracao_maxima_meses: Optional[int] = Field(None, ge=1, description="Maximum grant duration in months")
    quantidade_parcelas: Optional[int] = Field(None, ge=1, description="Fixed number of installments")


class TipoBeneficio(BaseEntity):
    """Benefit type catalog entry (read-only for the grant lifecycle)."""

    nome: str = Field(..., min_length=1, max_length=200, description="Benefit type name")
    codigo: str = Field(..., min_length=1, max_length=50, description="Benefit type code")
    periodicidade: Periodicidade = Field(default=Periodicidade.MENSAL, description="Payment periodicity")
    valor: float = Field(default=0.0, ge=0, description="Installment value")
    especificacoes: Optional[EspecificacoesBeneficio] = Field(None, description="Duration specification")
    ativo: bool = Field(default=True, description="Whether the benefit type accepts new requests")


class Solicitacao(BaseEntity):
    """Citizen benefit request (read-only for the grant lifecycle)."""

    protocolo: str = Field(..., min_length=1, description="Request protocol number")
    beneficiario: Optional[Beneficiario] = Field(None, description="Beneficiary data")
    tipo_beneficio_id: Optional[str] = Field(None, description="Benefit type ID")
    unidade_id: Optional[str] = Field(None, description="Service unit ID")
    tecnico_id: Optional[str] = Field(None, description="Responsible social worker ID")
    liberador_id: Optional[str] = Field(None, description="User who released the request")
    prioridade: Optional[int] = Field(None, ge=1, le=5, description="Service priority")
    determinacao_judicial_flag: bool = Field(default=False, description="Court-ordered request")
    determinacao_judicial_id: Optional[str] = Field(None, description="Judicial determination document ID")


class Concessao(BaseEntity):
    """Benefit grant: the effective right to receive a benefit."""

    solicitacao_id: str = Field(..., description="Originating request ID")
    status: StatusConcessao = Field(default=StatusConcessao.ATIVO, description="Lifecycle status")
    data_inicio: datetime = Field(default_factory=utcnow, description="Grant start date")
    data_encerramento: Optional[datetime] = Field(None, description="Grant end/closure date")
    ordem_prioridade: int = Field(default=3, ge=1, description="Priority order")
    determinacao_judicial_flag: bool = Field(default=False, description="Court-ordered grant")
    documento_judicial_id: Optional[str] = Field(None, description="Judicial document backing a prorogation")
    concessao_anterior_id: Optional[str] = Field(None, description="Predecessor grant when prorogated")
    prorrogada_em: Optional[datetime] = Field(None, description="When a successor grant was created from this one")
    motivo_suspensao: Optional[str] = Field(None, description="Suspension reason")
    data_revisao_suspensao: Optional[datetime] = Field(None, description="Suspension review date")
    motivo_bloqueio: Optional[str] = Field(None, description="Block reason")
    data_bloqueio: Optional[datetime] = Field(None, description="Block timestamp")
    motivo_desbloqueio: Optional[str] = Field(None, description="Unblock reason")
    data_desbloqueio: Optional[datetime] = Field(None, description="Unblock timestamp")
    motivo_encerramento: Optional[str] = Field(None, description="Closure or cancellation reason")
    version: int = Field(default=1, ge=1, description="Optimistic concurrency version")

    @model_validator(mode='after')
    def validate_dates(self):
        """Validate date consistency."""
        if self.data_encerramento and self.data_encerramento < self.data_inicio:
            raise ValueError('data_encerramento cannot precede data_inicio')
        return self

    def is_terminal(self) -> bool:
        """Check if grant reached a terminal status."""
        return self.status == StatusConcessao.CANCELADO


class HistoricoConcessao(BaseModel):
    """Immutable record of a grant status transition."""

    model_config = ConfigDict(
        use_enum_values=True,
        frozen=True
    )

    id: str = Field(default_factory=generate_id, description="Unique identifier")
    concessao_id: str = Field(..., description="Grant ID")
    status_anterior: StatusConcessao = Field(..., description="Status before the transition")
    status_novo: StatusConcessao = Field(..., description="Status after the transition")
    alterado_por: Optional[str] = Field(None, description="Actor ID")
    motivo: Optional[str] = Field(None, description="Transition reason")
    observacoes: Optional[str] = Field(None, description="Additional notes")
    data_alteracao: datetime = Field(default_factory=utcnow, description="Transition timestamp")
    schema_version: int = Field(default=1, description="Schema version")


class MotivoOperacao(BaseModel):
    """Catalogued reason for a grant operation."""

    model_config = ConfigDict(frozen=True)

    codigo: str = Field(..., description="Reason code")
    descricao: str = Field(..., description="Human-readable description")
    ativo: bool = Field(default=True, description="Whether the reason can be selected")


class Pagamento(BaseEntity):
    """Installment generated for a grant."""

    concessao_id: str = Field(..., description="Grant ID")
    solicitacao_id: Optional[str] = Field(None, description="Originating request ID")
    numero_parcela: int = Field(..., ge=1, description="Installment number")
    total_parcelas: int = Field(..., ge=1, description="Total installments")
    valor: float = Field(default=0.0, ge=0, description="Installment value")
    status: StatusPagamento = Field(default=StatusPagamento.PENDENTE, description="Installment status")
    data_prevista_liberacao: Optional[datetime] = Field(None, description="Scheduled release date")
    data_liberacao: Optional[datetime] = Field(None, description="Effective release date")
    motivo_cancelamento: Optional[str] = Field(None, description="Cancellation reason")

    @model_validator(mode='after')
    def validate_parcela(self):
        """Validate installment numbering."""
        if self.numero_parcela > self.total_parcelas:
            raise ValueError('numero_parcela cannot exceed total_parcelas')
        return self


class EstatisticasParcelas(BaseModel):
    """Installment progress of a grant."""

    total: int = 0
    liberadas: int = 0
    confirmadas: int = 0
    pendentes: int = 0
    percentual_concluido: int = 0


class ConcessaoResumo(BaseModel):
    """Grant listing row with request data flattened in."""

    id: str
    data_inicio: datetime
    status: str
    prioridade: Optional[int] = None
    protocolo: Optional[str] = None
    determinacao_judicial: bool = False
    created_at: datetime
    updated_at: datetime
    beneficiario: Optional[Beneficiario] = None
    tipo_beneficio_id: Optional[str] = None
    unidade_id: Optional[str] = None
    tecnico_id: Optional[str] = None

    @classmethod
    def from_entities(cls, concessao: Concessao, solicitacao: Optional[Solicitacao]) -> "ConcessaoResumo":
        return cls(
            id=concessao.id,
            data_inicio=concessao.data_inicio,
            status=concessao.status,
            prioridade=solicitacao.prioridade if solicitacao else concessao.ordem_prioridade,
            protocolo=solicitacao.protocolo if solicitacao else None,
            determinacao_judicial=bool(solicitacao and solicitacao.determinacao_judicial_flag),
            created_at=concessao.created_at,
            updated_at=concessao.updated_at,
            beneficiario=solicitacao.beneficiario if solicitacao else None,
            tipo_beneficio_id=solicitacao.tipo_beneficio_id if solicitacao else None,
            unidade_id=solicitacao.unidade_id if solicitacao else None,
            tecnico_id=solicitacao.tecnico_id if solicitacao else None
        )
