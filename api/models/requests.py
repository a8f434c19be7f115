# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for grant lifecycle operations.
"""

from datetime import datetime
from typing import Optional
from pydantic import Field, field_validator, model_validator
from .base import BaseRequest
from .enums import StatusConcessao


class _MotivoRequest(BaseRequest):
    """Base request for operations that require a reason."""

    motivo: str = Field(..., min_length=1, max_length=500, description="Operation reason")

    @field_validator('motivo')
    @classmethod
    def validate_motivo(cls, v):
        """Validate reason is not blank."""
        if not v.strip():
            raise ValueError('Reason cannot be empty')
        return v.strip()


class CreateConcessaoRequest(BaseRequest):
    """Request model for creating a grant from an approved request."""

    solicitacao_id: str = Field(..., min_length=1, description="Approved request ID")


class UpdateStatusConcessaoRequest(BaseRequest):
    """Request model for a generic status update."""

    status: StatusConcessao = Field(..., description="Target status")
    motivo: Optional[str] = Field(None, max_length=500, description="Transition reason")


class ProrrogarConcessaoRequest(BaseRequest):
    """Request model for prorogating a ceased grant."""

    documento_judicial_id: Optional[str] = Field(None, description="Judicial document ID")


class SuspenderConcessaoRequest(_MotivoRequest):
    """Request model for suspending a grant."""

    data_revisao: Optional[datetime] = Field(None, description="Scheduled review date")


class BloquearConcessaoRequest(_MotivoRequest):
    """Request model for blocking a grant."""


class DesbloquearConcessaoRequest(_MotivoRequest):
    """Request model for unblocking a grant."""


class ReativarConcessaoRequest(_MotivoRequest):
    """Request model for reactivating a grant."""


class CancelarConcessaoRequest(_MotivoRequest):
    """Request model for cancelling a grant."""

    observacoes: Optional[str] = Field(None, max_length=1000, description="Additional notes")


class ConcessaoFilters(BaseRequest):
    """Filters and pagination for grant listing."""

    status: Optional[StatusConcessao] = Field(None, description="Grant status")
    data_inicio_de: Optional[datetime] = Field(None, description="Minimum start date")
    data_inicio_ate: Optional[datetime] = Field(None, description="Maximum start date")
    unidade_id: Optional[str] = Field(None, description="Service unit ID")
    tipo_beneficio_id: Optional[str] = Field(None, description="Benefit type ID")
    determinacao_judicial: Optional[bool] = Field(None, description="Court-ordered flag")
    prioridade: Optional[int] = Field(None, ge=1, le=5, description="Request priority")
    search: Optional[str] = Field(None, max_length=200, description="Name, CPF or protocol search")
    limit: int = Field(default=100, description="Page size")
    offset: int = Field(default=0, ge=0, description="Result offset")
    page: Optional[int] = Field(None, description="1-based page, overrides offset")

    @model_validator(mode='after')
    def validate_date_range(self):
        """Validate start-date range ordering."""
        if self.data_inicio_de and self.data_inicio_ate and self.data_inicio_de > self.data_inicio_ate:
            raise ValueError('data_inicio_de must not be after data_inicio_ate')
        return self

    def has_solicitacao_filters(self) -> bool:
        """Whether any filter targets request-level data."""
        return any([
            self.unidade_id,
            self.tipo_beneficio_id,
            self.determinacao_judicial is not None,
            self.prioridade is not None,
            self.search and self.search.strip()
        ])
