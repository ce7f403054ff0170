# Carrega módulos para registrar tabelas no metadata:
import certdesk.models.user          # noqa: F401
import certdesk.models.admin_role    # noqa: F401
import certdesk.models.certificate   # noqa: F401
import certdesk.models.tokens        # noqa: F401

__all__: list[str] = []
