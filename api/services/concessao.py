# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Grant (concessão) lifecycle service.

Orchestrates the grant state machine on top of MongoDB: every mutation is a
compare-and-set on the grant ``version``, followed by a best-effort history
append. Business rules live in ``domain.concessoes``.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Generator, List, Optional, Union
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pydantic import ValidationError

from .mongodb import MongoDBService, CONCESSOES
from .historico import HistoricoConcessaoService
from .pagamento import PagamentoService
from .solicitacao import SolicitacaoService
from domain.concessoes import (
    MOTIVO_ENCERRAMENTO_AUTOMATICO,
    MOTIVO_PRORROGACAO,
    MOTIVO_PRORROGACAO_JUDICIAL,
    PAGAMENTOS_NAO_CANCELAVEIS,
    ValidationResult,
    calcular_data_encerramento,
    deve_encerrar_automaticamente,
    parse_status,
    resolve_pagination,
    validate_bloqueio,
    validate_cancelamento,
    validate_desbloqueio,
    validate_periodicidade_prorrogacao,
    validate_prorrogacao,
    validate_reativacao,
    validate_status_transition,
    validate_suspensao
)
from domain.motivos import motivos_ativos
from models.base import SYSTEM_USER, utcnow
from models.entities import Concessao, ConcessaoResumo, HistoricoConcessao, MotivoOperacao
from models.enums import OperacaoConcessao, StatusConcessao
from models.requests import (
    BloquearConcessaoRequest,
    CancelarConcessaoRequest,
    ConcessaoFilters,
    CreateConcessaoRequest,
    DesbloquearConcessaoRequest,
    ProrrogarConcessaoRequest,
    ReativarConcessaoRequest,
    SuspenderConcessaoRequest,
    UpdateStatusConcessaoRequest
)
from utils.errors import (
    ConflictException,
    InternalErrorException,
    NotFoundException,
    ValidationException,
    validation_exception_from
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Errors surfaced to callers as-is; anything else becomes InternalErrorException
KNOWN_ERRORS = (ValidationException, NotFoundException, ConflictException)


class ConcessaoService:
    """Service implementing the grant lifecycle state machine."""

    def __init__(
        self,
        mongo_service: MongoDBService,
        historico_service: HistoricoConcessaoService,
        pagamento_service: PagamentoService,
        solicitacao_service: SolicitacaoService
    ):
        self.mongo_service = mongo_service
        self.historico_service = historico_service
        self.pagamento_service = pagamento_service
        self.solicitacao_service = solicitacao_service
        self.collection_name = CONCESSOES

    # Plumbing

    @contextmanager
    def _operation(self, name: str, **attributes) -> Generator[trace.Span, None, None]:
        """
        Trace a grant operation and apply the error propagation policy.

        Known client errors are logged and re-raised; any other exception is
        logged with its traceback and replaced by a generic internal error.
        """
        with tracer.start_as_current_span(f"concessao.{name}") as span:
            span.set_attributes({
                f"concessao.{key}": str(value)
                for key, value in attributes.items()
                if value is not None
            })
            try:
                yield span
            except KNOWN_ERRORS as e:
                span.set_status(Status(StatusCode.ERROR, e.message))
                logger.warning(
                    f"Grant operation rejected: {name}",
                    extra={
                        "operation": name,
                        "error_type": e.error_type,
                        "detail": e.message,
                        **attributes
                    }
                )
                raise
            except Exception as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                logger.error(
                    f"Unexpected error in grant operation: {name}",
                    extra={
                        "operation": name,
                        "error_class": e.__class__.__name__,
                        **attributes
                    },
                    exc_info=True
                )
                raise InternalErrorException() from e

    @staticmethod
    def _require(value: Optional[str], message: str) -> None:
        if not value or not str(value).strip():
            raise ValidationException(message)

    @staticmethod
    def _entrada(request_class, **fields):
        """Validate operation input through its request model."""
        try:
            return request_class(**fields)
        except ValidationError as e:
            raise validation_exception_from(e, "Invalid input for grant operation")

    @staticmethod
    def _check(validation: ValidationResult) -> None:
        if not validation.is_valid:
            raise ValidationException(validation.message, validation.errors)

    def _carregar(self, concessao_id: str) -> Concessao:
        self._require(concessao_id, "Grant ID is required")
        document = self.mongo_service.find_by_id(self.collection_name, concessao_id)
        if not document:
            raise NotFoundException(f"Grant {concessao_id} not found")
        return Concessao(**document)

    def _persistir(self, concessao: Concessao, updates: Dict[str, Any], usuario_id: Optional[str]) -> Concessao:
        """Apply updates guarded by the version the grant was loaded with."""
        atualizado = self.mongo_service.update_versioned(
            self.collection_name,
            concessao.id,
            concessao.version,
            updates,
            usuario_id
        )
        if not atualizado:
            raise ConflictException(
                f"Grant {concessao.id} was modified concurrently; reload it and retry"
            )

        for campo, valor in updates.items():
            setattr(concessao, campo, valor)
        concessao.version += 1
        concessao.update_timestamp(usuario_id)
        return concessao

    def _registrar_historico(
        self,
        concessao_id: str,
        status_anterior: str,
        status_novo: str,
        usuario_id: Optional[str],
        motivo: Optional[str],
        observacoes: Optional[str] = None
    ) -> None:
        """Best-effort history append: failures are logged and swallowed."""
        try:
            self.historico_service.append(
                concessao_id,
                status_anterior,
                status_novo,
                usuario_id,
                motivo,
                observacoes=observacoes
            )
        except Exception as e:
            logger.error(
                "Grant history write failed; status change was kept",
                extra={
                    "concessao_id": concessao_id,
                    "status_anterior": str(status_anterior),
                    "status_novo": str(status_novo),
                    "error": str(e)
                },
                exc_info=True
            )

    def _transicionar(
        self,
        concessao: Concessao,
        updates: Dict[str, Any],
        usuario_id: Optional[str],
        motivo: Optional[str],
        observacoes: Optional[str] = None
    ) -> Concessao:
        status_anterior = concessao.status
        self._persistir(concessao, updates, usuario_id)
        self._registrar_historico(
            concessao.id, status_anterior, concessao.status, usuario_id, motivo, observacoes
        )
        logger.info(
            f"Grant status changed from {status_anterior} to {concessao.status}",
            extra={
                "concessao_id": concessao.id,
                "status_anterior": status_anterior,
                "status_novo": concessao.status,
                "usuario_id": usuario_id or SYSTEM_USER,
                "version": concessao.version
            }
        )
        return concessao

    # Queries

    def find_by_id(self, concessao_id: str) -> Optional[Concessao]:
        """Find a grant by ID, or None if it does not exist."""
        with self._operation("find_by_id", id=concessao_id):
            self._require(concessao_id, "Grant ID is required")
            document = self.mongo_service.find_by_id(self.collection_name, concessao_id)
            return Concessao(**document) if document else None

    def find_all(self, filtros: Union[ConcessaoFilters, Dict[str, Any], None] = None) -> Dict[str, Any]:
        """
        List grants with request data flattened in.

        Args:
            filtros: ConcessaoFilters or a dict of its fields

        Returns:
            Dict with ``data`` (list of ConcessaoResumo), ``total``, ``limit``
            and ``offset``
        """
        with self._operation("find_all") as span:
            if not isinstance(filtros, ConcessaoFilters):
                try:
                    filtros = ConcessaoFilters(**(filtros or {}))
                except ValidationError as e:
                    raise validation_exception_from(e, "Invalid grant filters")

            try:
                limit, offset = resolve_pagination(filtros.limit, filtros.offset, filtros.page)
            except ValueError as e:
                raise ValidationException(str(e))

            query: Dict[str, Any] = {}
            if filtros.status:
                query["status"] = filtros.status

            if filtros.data_inicio_de or filtros.data_inicio_ate:
                date_filter = {}
                if filtros.data_inicio_de:
                    date_filter["$gte"] = filtros.data_inicio_de
                if filtros.data_inicio_ate:
                    date_filter["$lte"] = filtros.data_inicio_ate
                query["data_inicio"] = date_filter

            if filtros.has_solicitacao_filters():
                solicitacao_ids = self.solicitacao_service.find_ids(filtros)
                if not solicitacao_ids:
                    return {"data": [], "total": 0, "limit": limit, "offset": offset}
                query["solicitacao_id"] = {"$in": solicitacao_ids}

            resultado = self.mongo_service.paginate(
                self.collection_name, query, limit=limit, offset=offset, sort_by="created_at"
            )
            concessoes = [Concessao(**document) for document in resultado.items]
            solicitacoes = self.solicitacao_service.find_by_ids(
                list({concessao.solicitacao_id for concessao in concessoes})
            )

            span.set_attribute("concessao.total", resultado.total)
            return {
                "data": [
                    ConcessaoResumo.from_entities(concessao, solicitacoes.get(concessao.solicitacao_id))
                    for concessao in concessoes
                ],
                "total": resultado.total,
                "limit": limit,
                "offset": offset
            }

    def listar_historico(self, concessao_id: str) -> List[HistoricoConcessao]:
        with self._operation("listar_historico", id=concessao_id):
            self._carregar(concessao_id)
            return self.historico_service.listar_por_concessao(concessao_id)

    def buscar_motivos_por_operacao(self, operacao) -> List[MotivoOperacao]:
        """Active catalogued reasons for an operation."""
        with self._operation("buscar_motivos_por_operacao", operacao=operacao):
            self._require(operacao, "Operation is required")
            try:
                operacao = OperacaoConcessao(operacao)
            except ValueError:
                aceitos = ", ".join(item.value for item in OperacaoConcessao)
                raise ValidationException(f"Invalid operation '{operacao}'. Accepted values: {aceitos}")

            motivos = motivos_ativos(operacao)
            logger.info(
                f"Found {len(motivos)} active reasons for operation {operacao.value}",
                extra={"operacao": operacao.value}
            )
            return motivos

    # Creation

    def criar_se_nao_existir(self, solicitacao_id: str, usuario_id: Optional[str] = None) -> Concessao:
        """
        Return the grant of a request, creating it if absent.

        A new grant starts ``ATIVO``; its end date follows the benefit
        type's maximum duration when one is specified. Installment
        generation failures are logged and do not undo the creation.
        """
        with self._operation("criar_se_nao_existir", solicitacao_id=solicitacao_id):
            self._entrada(CreateConcessaoRequest, solicitacao_id=solicitacao_id)

            existente = self.mongo_service.find_one(self.collection_name, {"solicitacao_id": solicitacao_id})
            if existente:
                logger.info(
                    "Grant already exists for request",
                    extra={"solicitacao_id": solicitacao_id, "concessao_id": existente["id"]}
                )
                return Concessao(**existente)

            solicitacao = self.solicitacao_service.find_by_id(solicitacao_id)
            if not solicitacao:
                raise NotFoundException(f"Request {solicitacao_id} not found")

            tipo_beneficio = None
            if solicitacao.tipo_beneficio_id:
                tipo_beneficio = self.solicitacao_service.find_tipo_beneficio(solicitacao.tipo_beneficio_id)

            data_inicio = utcnow()
            concessao = Concessao(
                solicitacao_id=solicitacao_id,
                status=StatusConcessao.ATIVO,
                data_inicio=data_inicio,
                data_encerramento=calcular_data_encerramento(data_inicio, tipo_beneficio),
                ordem_prioridade=solicitacao.prioridade or 3,
                determinacao_judicial_flag=solicitacao.determinacao_judicial_flag,
                created_by=usuario_id or SYSTEM_USER,
                updated_by=usuario_id or SYSTEM_USER
            )
            self.mongo_service.create(self.collection_name, concessao.to_document())

            logger.info(
                "Grant created",
                extra={
                    "concessao_id": concessao.id,
                    "solicitacao_id": solicitacao_id,
                    "usuario_id": usuario_id or SYSTEM_USER
                }
            )

            try:
                self.pagamento_service.gerar_pagamentos_para_concessao(concessao, solicitacao, usuario_id)
            except Exception as e:
                logger.error(
                    "Installment generation failed for new grant",
                    extra={"concessao_id": concessao.id, "error": str(e)},
                    exc_info=True
                )

            return concessao

    def prorrogar_concessao(
        self,
        concessao_id: str,
        usuario_id: str,
        documento_judicial_id: Optional[str] = None
    ) -> Concessao:
        """
        Prorogate a ceased grant by creating a linked successor grant.

        The successor starts ``APTO`` and receives as many installments as
        the original grant had.
        """
        with self._operation("prorrogar_concessao", id=concessao_id, usuario_id=usuario_id):
            documento_judicial_id = self._entrada(
                ProrrogarConcessaoRequest, documento_judicial_id=documento_judicial_id
            ).documento_judicial_id
            concessao = self._carregar(concessao_id)

            solicitacao = self.solicitacao_service.find_by_id(concessao.solicitacao_id)
            if not solicitacao:
                raise NotFoundException(f"Request {concessao.solicitacao_id} not found")

            total_concessoes = self.mongo_service.count(
                self.collection_name, {"solicitacao_id": solicitacao.id}
            )
            self._check(validate_prorrogacao(concessao, solicitacao, total_concessoes, documento_judicial_id))

            quantidade_parcelas = self.pagamento_service.contar_por_concessao(concessao.id)
            if quantidade_parcelas == 0:
                raise ValidationException(
                    "Original grant has no installments; cannot determine the prorogation length"
                )

            tipo_beneficio = None
            if solicitacao.tipo_beneficio_id:
                tipo_beneficio = self.solicitacao_service.find_tipo_beneficio(solicitacao.tipo_beneficio_id)
            if not tipo_beneficio:
                raise NotFoundException(f"Benefit type {solicitacao.tipo_beneficio_id} not found")

            self._check(validate_periodicidade_prorrogacao(solicitacao, tipo_beneficio))

            judicial = solicitacao.determinacao_judicial_flag
            nova = Concessao(
                solicitacao_id=solicitacao.id,
                status=StatusConcessao.APTO,
                data_inicio=utcnow(),
                ordem_prioridade=concessao.ordem_prioridade,
                determinacao_judicial_flag=judicial,
                documento_judicial_id=documento_judicial_id or (solicitacao.determinacao_judicial_id if judicial else None),
                concessao_anterior_id=concessao.id,
                created_by=usuario_id or SYSTEM_USER,
                updated_by=usuario_id or SYSTEM_USER
            )
            # Version-checked write on the source grant: concurrent prorogations of it conflict
            self._persistir(concessao, {"prorrogada_em": utcnow()}, usuario_id)
            self.mongo_service.create(self.collection_name, nova.to_document())

            self._registrar_historico(
                nova.id,
                StatusConcessao.APTO.value,
                StatusConcessao.APTO.value,
                usuario_id,
                MOTIVO_PRORROGACAO_JUDICIAL if judicial else MOTIVO_PRORROGACAO,
                observacoes=f"Concessão anterior: {concessao.id}"
            )

            logger.info(
                "Grant prorogated",
                extra={
                    "concessao_id": nova.id,
                    "concessao_anterior_id": concessao.id,
                    "determinacao_judicial": judicial,
                    "quantidade_parcelas": quantidade_parcelas
                }
            )

            try:
                self.pagamento_service.gerar_pagamentos_para_concessao(
                    nova, solicitacao, usuario_id, quantidade_parcelas=quantidade_parcelas
                )
            except Exception as e:
                logger.error(
                    "Installment generation failed for prorogated grant",
                    extra={"concessao_id": nova.id, "error": str(e)},
                    exc_info=True
                )

            return nova

    # Transitions

    def atualizar_status(
        self,
        concessao_id: str,
        status,
        usuario_id: Optional[str] = None,
        motivo: Optional[str] = None
    ) -> Concessao:
        """
        Move a grant to another status following the transition table.

        Requesting the current status is a no-op: the grant is returned
        unchanged and no history is written.
        """
        with self._operation("atualizar_status", id=concessao_id, status=status):
            self._require(concessao_id, "Grant ID is required")

            novo_status = parse_status(status)
            if novo_status is None:
                aceitos = ", ".join(item.value for item in StatusConcessao)
                raise ValidationException(f"Invalid status '{status}'. Accepted values: {aceitos}")

            motivo = self._entrada(UpdateStatusConcessaoRequest, status=novo_status, motivo=motivo).motivo

            concessao = self._carregar(concessao_id)

            if concessao.status == novo_status:
                logger.info(
                    f"Grant already has status {novo_status.value}",
                    extra={"concessao_id": concessao_id}
                )
                return concessao

            if concessao.is_terminal():
                raise ValidationException(
                    f"Grant {concessao_id} is cancelled; transition from {StatusConcessao(concessao.status).value} to {novo_status.value} is not allowed"
                )

            self._check(validate_status_transition(concessao.status, novo_status))

            return self._transicionar(concessao, {"status": novo_status.value}, usuario_id, motivo)

    def suspender_concessao(
        self,
        concessao_id: str,
        usuario_id: str,
        motivo: str,
        data_revisao: Optional[datetime] = None
    ) -> Concessao:
        with self._operation("suspender_concessao", id=concessao_id, usuario_id=usuario_id):
            entrada = self._entrada(SuspenderConcessaoRequest, motivo=motivo, data_revisao=data_revisao)
            concessao = self._carregar(concessao_id)
            self._check(validate_suspensao(concessao, entrada.motivo))

            updates = {
                "status": StatusConcessao.SUSPENSO.value,
                "motivo_suspensao": entrada.motivo,
                "data_revisao_suspensao": entrada.data_revisao
            }
            return self._transicionar(concessao, updates, usuario_id, entrada.motivo)

    def bloquear_concessao(self, concessao_id: str, usuario_id: str, motivo: str) -> Concessao:
        with self._operation("bloquear_concessao", id=concessao_id, usuario_id=usuario_id):
            entrada = self._entrada(BloquearConcessaoRequest, motivo=motivo)
            concessao = self._carregar(concessao_id)
            self._check(validate_bloqueio(concessao, entrada.motivo))

            updates = {
                "status": StatusConcessao.BLOQUEADO.value,
                "motivo_bloqueio": entrada.motivo,
                "data_bloqueio": utcnow()
            }
            return self._transicionar(concessao, updates, usuario_id, entrada.motivo)

    def desbloquear_concessao(self, concessao_id: str, usuario_id: str, motivo: str) -> Concessao:
        with self._operation("desbloquear_concessao", id=concessao_id, usuario_id=usuario_id):
            self._require(usuario_id, "User ID is required")
            entrada = self._entrada(DesbloquearConcessaoRequest, motivo=motivo)
            concessao = self._carregar(concessao_id)
            self._check(validate_desbloqueio(concessao, entrada.motivo))

            updates = {
                "status": StatusConcessao.ATIVO.value,
                "motivo_desbloqueio": entrada.motivo,
                "data_desbloqueio": utcnow()
            }
            return self._transicionar(concessao, updates, usuario_id, entrada.motivo)

    def reativar_concessao(self, concessao_id: str, usuario_id: str, motivo: str) -> Concessao:
        with self._operation("reativar_concessao", id=concessao_id, usuario_id=usuario_id):
            self._require(usuario_id, "User ID is required")
            entrada = self._entrada(ReativarConcessaoRequest, motivo=motivo)
            concessao = self._carregar(concessao_id)
            self._check(validate_reativacao(concessao, entrada.motivo))

            return self._transicionar(
                concessao, {"status": StatusConcessao.ATIVO.value}, usuario_id, entrada.motivo
            )

    def cancelar_concessao(
        self,
        concessao_id: str,
        usuario_id: str,
        motivo: str,
        observacoes: Optional[str] = None
    ) -> Concessao:
        """
        Cancel an active grant and every installment still open.

        Installment cancellations are best-effort; the history entry
        records how many of the grant's installments were cancelled.
        """
        with self._operation("cancelar_concessao", id=concessao_id, usuario_id=usuario_id):
            entrada = self._entrada(CancelarConcessaoRequest, motivo=motivo, observacoes=observacoes)
            concessao = self._carregar(concessao_id)
            self._check(validate_cancelamento(concessao, entrada.motivo))

            status_anterior = concessao.status
            updates = {
                "status": StatusConcessao.CANCELADO.value,
                "data_encerramento": utcnow(),
                "motivo_encerramento": entrada.motivo
            }
            self._persistir(concessao, updates, usuario_id)

            pagamentos = self.pagamento_service.find_by_concessao(concessao.id)
            cancelados = 0
            for pagamento in pagamentos:
                if pagamento.status in PAGAMENTOS_NAO_CANCELAVEIS:
                    continue
                try:
                    self.pagamento_service.cancelar(
                        pagamento.id,
                        f"Cancelamento automático - Concessão cancelada: {entrada.motivo}",
                        usuario_id
                    )
                    cancelados += 1
                except Exception as e:
                    logger.error(
                        "Failed to cancel installment of cancelled grant",
                        extra={"concessao_id": concessao.id, "pagamento_id": pagamento.id, "error": str(e)},
                        exc_info=True
                    )

            resumo = f"Pagamentos cancelados: {cancelados}/{len(pagamentos)}"
            self._registrar_historico(
                concessao.id,
                status_anterior,
                concessao.status,
                usuario_id,
                entrada.motivo,
                observacoes=f"{entrada.observacoes}. {resumo}" if entrada.observacoes else resumo
            )

            logger.info(
                "Grant cancelled",
                extra={
                    "concessao_id": concessao.id,
                    "pagamentos_cancelados": cancelados,
                    "pagamentos_total": len(pagamentos)
                }
            )
            return concessao

    def verificar_encerramento_automatico(self, concessao_id: str) -> Optional[Concessao]:
        """
        Close an active grant once every installment was released.

        Returns:
            The closed grant, or None when nothing changed
        """
        with self._operation("verificar_encerramento_automatico", id=concessao_id) as span:
            concessao = self._carregar(concessao_id)

            if concessao.status != StatusConcessao.ATIVO:
                span.set_attribute("concessao.encerrada", False)
                return None

            pagamentos = self.pagamento_service.find_by_concessao(concessao.id)
            if not deve_encerrar_automaticamente(concessao, pagamentos):
                logger.debug(
                    "Grant still has installments to release",
                    extra={"concessao_id": concessao_id, "pagamentos_total": len(pagamentos)}
                )
                span.set_attribute("concessao.encerrada", False)
                return None

            updates = {
                "status": StatusConcessao.CESSADO.value,
                "data_encerramento": utcnow(),
                "motivo_encerramento": MOTIVO_ENCERRAMENTO_AUTOMATICO
            }
            self._transicionar(concessao, updates, SYSTEM_USER, MOTIVO_ENCERRAMENTO_AUTOMATICO)

            span.set_attribute("concessao.encerrada", True)
            return concessao
