class InvalidStepError(ValueError):
    """El paso no está declarado para el flujo destino."""

    def __init__(self, flow, step: str):
        self.flow = flow
        self.step = step
        super().__init__(f"El paso '{step}' no pertenece al flujo '{getattr(flow, 'value', flow)}'")


class SessionStoreError(Exception):
    """Fallo de persistencia del almacén de sesiones."""
    pass
