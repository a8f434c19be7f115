# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for Pydantic models.
"""

import pytest
from datetime import datetime, timedelta
from pydantic import ValidationError

from models.base import utcnow
from models.entities import (
    Beneficiario, Concessao, ConcessaoResumo, HistoricoConcessao,
    MotivoOperacao, Pagamento, Solicitacao
)
from models.enums import StatusConcessao
from models.requests import (
    BloquearConcessaoRequest, CancelarConcessaoRequest, ConcessaoFilters, CreateConcessaoRequest,
    DesbloquearConcessaoRequest, ProrrogarConcessaoRequest, ReativarConcessaoRequest,
    SuspenderConcessaoRequest, UpdateStatusConcessaoRequest
)


class TestConcessaoModel:
    """Test Concessao model validation."""

    def test_defaults(self):
        """Test grant defaults."""
        concessao = Concessao(solicitacao_id="sol-1")

        assert concessao.status == StatusConcessao.ATIVO
        assert concessao.status == "ativo"
        assert concessao.version == 1
        assert concessao.ordem_prioridade == 3
        assert isinstance(concessao.created_at, datetime)
        assert concessao.created_at.tzinfo is not None

    def test_end_date_cannot_precede_start(self):
        """Test date consistency validation."""
        inicio = utcnow()

        with pytest.raises(ValidationError) as exc_info:
            Concessao(solicitacao_id="sol-1", data_inicio=inicio, data_encerramento=inicio - timedelta(days=1))

        assert "data_encerramento cannot precede data_inicio" in str(exc_info.value)

    def test_invalid_status(self):
        with pytest.raises(ValidationError):
            Concessao(solicitacao_id="sol-1", status="arquivado")

    def test_terminal(self):
        assert Concessao(solicitacao_id="sol-1", status="cancelado").is_terminal()
        assert not Concessao(solicitacao_id="sol-1", status="cessado").is_terminal()

    def test_to_document_uses_mongo_id(self):
        concessao = Concessao(solicitacao_id="sol-1")

        document = concessao.to_document()

        assert document["_id"] == concessao.id
        assert "id" not in document

        document["id"] = document.pop("_id")
        restored = Concessao(**document)
        assert restored.id == concessao.id
        assert restored.status == concessao.status

    def test_update_timestamp(self):
        concessao = Concessao(solicitacao_id="sol-1")
        antes = concessao.updated_at

        concessao.update_timestamp(None)

        assert concessao.updated_by == "SISTEMA"
        assert concessao.updated_at >= antes


class TestBeneficiario:
    """Test beneficiary CPF normalization."""

    def test_cpf_is_normalized(self):
        beneficiario = Beneficiario(id="cid-1", nome="João Souza", cpf="123.456.789-09")
        assert beneficiario.cpf == "12345678909"

    def test_cpf_length(self):
        with pytest.raises(ValidationError):
            Beneficiario(id="cid-1", nome="João Souza", cpf="123.456")


class TestImmutableRecords:
    """Test frozen history and reason models."""

    def test_historico_is_frozen(self):
        historico = HistoricoConcessao(
            concessao_id="c-1",
            status_anterior=StatusConcessao.ATIVO,
            status_novo=StatusConcessao.SUSPENSO,
            alterado_por="operador-1"
        )

        assert historico.status_novo == "suspenso"
        with pytest.raises(ValidationError):
            historico.motivo = "alterado"

    def test_motivo_is_frozen(self):
        motivo = MotivoOperacao(codigo="SUS01", descricao="Mudança temporária de município")
        assert motivo.ativo is True
        with pytest.raises(ValidationError):
            motivo.ativo = False


class TestPagamentoModel:
    """Test installment numbering validation."""

    def test_parcela_cannot_exceed_total(self):
        with pytest.raises(ValidationError):
            Pagamento(concessao_id="c-1", numero_parcela=4, total_parcelas=3)

    def test_default_status(self):
        assert Pagamento(concessao_id="c-1", numero_parcela=1, total_parcelas=1).status == "pendente"


class TestConcessaoResumo:
    """Test listing row flattening."""

    def test_with_request(self):
        solicitacao = Solicitacao(
            protocolo="SOL202600001",
            beneficiario=Beneficiario(id="cid-1", nome="Maria da Silva", cpf="12345678909"),
            unidade_id="unidade-centro",
            prioridade=1,
            determinacao_judicial_flag=True
        )
        concessao = Concessao(solicitacao_id=solicitacao.id, ordem_prioridade=4)

        resumo = ConcessaoResumo.from_entities(concessao, solicitacao)

        assert resumo.protocolo == "SOL202600001"
        assert resumo.prioridade == 1
        assert resumo.determinacao_judicial is True
        assert resumo.beneficiario.nome == "Maria da Silva"

    def test_without_request(self):
        concessao = Concessao(solicitacao_id="sol-removida", ordem_prioridade=4)

        resumo = ConcessaoResumo.from_entities(concessao, None)

        assert resumo.protocolo is None
        assert resumo.prioridade == 4
        assert resumo.determinacao_judicial is False


class TestRequestModels:
    """Test operation request validation."""

    def test_blank_reason_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            SuspenderConcessaoRequest(motivo="   ")

        assert "Reason cannot be empty" in str(exc_info.value)

    def test_reason_is_stripped(self):
        request = CancelarConcessaoRequest(motivo="  Óbito do beneficiário ", observacoes="Certidão anexada")
        assert request.motivo == "Óbito do beneficiário"

    def test_update_status_request(self):
        assert UpdateStatusConcessaoRequest(status="bloqueado").status == "bloqueado"
        with pytest.raises(ValidationError):
            UpdateStatusConcessaoRequest(status="arquivado")

    @pytest.mark.parametrize("request_class", [
        BloquearConcessaoRequest, DesbloquearConcessaoRequest, ReativarConcessaoRequest
    ])
    def test_reason_required(self, request_class):
        assert request_class(motivo="Determinação judicial").motivo == "Determinação judicial"
        with pytest.raises(ValidationError):
            request_class()

    def test_create_and_prorrogar(self):
        assert CreateConcessaoRequest(solicitacao_id="sol-1").solicitacao_id == "sol-1"
        with pytest.raises(ValidationError):
            CreateConcessaoRequest(solicitacao_id="")
        assert ProrrogarConcessaoRequest().documento_judicial_id is None


class TestConcessaoFilters:
    """Test listing filters."""

    def test_defaults(self):
        filtros = ConcessaoFilters()

        assert filtros.limit == 100
        assert filtros.offset == 0
        assert not filtros.has_solicitacao_filters()

    def test_request_level_filters(self):
        assert ConcessaoFilters(search="maria").has_solicitacao_filters()
        assert ConcessaoFilters(determinacao_judicial=False).has_solicitacao_filters()
        assert not ConcessaoFilters(search="   ", status="ativo").has_solicitacao_filters()

    def test_date_range_order(self):
        agora = utcnow()

        with pytest.raises(ValidationError):
            ConcessaoFilters(data_inicio_de=agora, data_inicio_ate=agora - timedelta(days=1))

    def test_negative_offset(self):
        with pytest.raises(ValidationError):
            ConcessaoFilters(offset=-1)
