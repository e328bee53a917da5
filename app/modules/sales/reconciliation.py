# app/modules/sales/reconciliation.py
"""
Reconciliación de stock con el servicio de inventario.

Cada operación sobre una venta se traduce en una lista de ``StockDelta``
(positivo = descontar stock, negativo = devolver stock) que se aplica
como una saga: pasos secuenciales, cada uno con su compensación. Si un
paso falla se compensan los anteriores en orden inverso y se relanza el
error original.

Las compensaciones son best-effort: el servicio remoto no ofrece
transacciones ni llaves de idempotencia, así que entre el fallo y la
compensación el stock remoto puede quedar transitoriamente inconsistente.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from app.shared.services.inventory_client import InventoryClient
from .normalizer import quantities_by_product

logger = logging.getLogger(__name__)


# ==================== SAGA ====================

@dataclass
class SagaStep:
    description: str
    action: Callable[[], Any]
    compensation: Callable[[], Any]


@dataclass
class CompensationFailure:
    step: str
    error: Exception


class Saga:
    """Ejecuta pasos en orden y deshace los completados si alguno falla"""

    def __init__(self, name: str):
        self.name = name
        self.steps: List[SagaStep] = []
        self.completed: List[SagaStep] = []
        self.compensation_failures: List[CompensationFailure] = []

    def add_step(self, description: str, action: Callable[[], Any], compensation: Callable[[], Any]) -> "Saga":
        self.steps.append(SagaStep(description, action, compensation))
        return self

    def execute(self):
        for step in self.steps:
            try:
                step.action()
            except Exception as e:
                logger.warning(
                    f"❌ Saga '{self.name}' falló en '{step.description}': {e}. "
                    f"Compensando {len(self.completed)} paso(s)"
                )
                self.compensate()
                raise
            self.completed.append(step)

    def compensate(self):
        """Compensar los pasos completados, del último al primero"""
        while self.completed:
            step = self.completed.pop()
            try:
                step.compensation()
                logger.info(f"↩️ Saga '{self.name}' compensó '{step.description}'")
            except Exception as e:
                # La falla de compensación nunca reemplaza el error original
                logger.error(
                    f"🚨 Saga '{self.name}' no pudo compensar '{step.description}': "
                    f"{type(e).__name__}: {e}"
                )
                self.compensation_failures.append(CompensationFailure(step.description, e))


# ==================== STOCK ====================

@dataclass(frozen=True)
class StockDelta:
    product_id: str
    signed_quantity: int

    @property
    def is_decrement(self) -> bool:
        return self.signed_quantity > 0


@dataclass
class ReconciliationResult:
    applied: List[StockDelta]
    saga: Optional[Saga] = field(default=None, repr=False)

    def compensate(self):
        """Deshacer todos los deltas aplicados (ej. si falla la persistencia local)"""
        if self.saga is not None:
            self.saga.compensate()


class StockReconciler:
    """
    Calcula y aplica los cambios mínimos de stock para llevar una venta
    de un conjunto de items a otro.
    """

    def __init__(self, client: InventoryClient):
        self.client = client

    # ==================== PLANES ====================

    @staticmethod
    def plan_create(items: Iterable[Any]) -> List[StockDelta]:
        return [
            StockDelta(product_id, quantity)
            for product_id, quantity in quantities_by_product(items).items()
        ]

    @staticmethod
    def plan_update(old_items: Iterable[Any], new_items: Iterable[Any]) -> List[StockDelta]:
        old_quantities = quantities_by_product(old_items)
        new_quantities = quantities_by_product(new_items)

        deltas = []
        for product_id in sorted(set(old_quantities) | set(new_quantities)):
            diff = new_quantities.get(product_id, 0) - old_quantities.get(product_id, 0)
            if diff != 0:
                deltas.append(StockDelta(product_id, diff))
        return deltas

    @staticmethod
    def plan_delete(items: Iterable[Any]) -> List[StockDelta]:
        return [
            StockDelta(product_id, -quantity)
            for product_id, quantity in quantities_by_product(items).items()
        ]

    # ==================== APLICACIÓN ====================

    def apply(self, deltas: List[StockDelta], operation: str = "reconciliacion") -> ReconciliationResult:
        """
        Aplicar los deltas en orden. Si uno falla, los anteriores se
        compensan y se relanza el error del paso que falló.
        """
        saga = Saga(operation)
        for delta in deltas:
            saga.add_step(*self._step_for(delta))

        saga.execute()

        logger.info(f"✅ {operation}: {len(deltas)} cambio(s) de stock aplicados")
        return ReconciliationResult(applied=list(deltas), saga=saga)

    def _step_for(self, delta: StockDelta):
        product_id = delta.product_id
        amount = abs(delta.signed_quantity)

        if delta.is_decrement:
            return (
                f"decrement {product_id} x{amount}",
                lambda: self.client.decrement(product_id, amount),
                lambda: self.client.adjust(product_id, amount)
            )
        return (
            f"adjust {product_id} +{amount}",
            lambda: self.client.adjust(product_id, amount),
            lambda: self.client.decrement(product_id, amount)
        )

    def reconcile_create(self, items: Iterable[Any]) -> ReconciliationResult:
        return self.apply(self.plan_create(items), "crear venta")

    def reconcile_update(self, old_items: Iterable[Any], new_items: Iterable[Any]) -> ReconciliationResult:
        return self.apply(self.plan_update(old_items, new_items), "actualizar venta")

    def reconcile_delete(self, items: Iterable[Any]) -> ReconciliationResult:
        return self.apply(self.plan_delete(items), "eliminar venta")


def describe_deltas(deltas: Iterable[StockDelta]) -> List[Dict[str, Any]]:
    return [
        {"product_id": d.product_id, "quantity": abs(d.signed_quantity),
         "operation": "decrement" if d.is_decrement else "adjust"}
        for d in deltas
    ]
