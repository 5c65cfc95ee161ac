# inventario_biomedico/errores.py


class ErrorActaInterna(Exception):
    """
    Error base del flujo de actas internas.
    Cada error lleva un código estable que la interfaz puede distinguir.
    """
    codigo = "error"
    reintentable = False

    def __init__(self, mensaje: str, codigo: str = None):
        super().__init__(mensaje)
        self.mensaje = mensaje
        if codigo:
            self.codigo = codigo

    def __str__(self):
        return f"[{self.codigo}] {self.mensaje}"


class ErrorValidacion(ErrorActaInterna):
    """Datos incompletos o inválidos; se rechazan antes de abrir la transacción."""
    codigo = "invalid-argument"


class ErrorElegibilidad(ErrorActaInterna):
    codigo = "ineligible-equipment"


class ErrorConflicto(ErrorActaInterna):
    """El estado cambió mientras se decidía: refrescar y volver a intentar."""
    codigo = "conflict-retry"

    @property
    def reintentable(self):
        return self.codigo == "conflict-retry"


class ErrorAutorizacion(ErrorActaInterna):
    codigo = "permission-denied"


class ErrorNoEncontrado(ErrorActaInterna):
    codigo = "not-found"
