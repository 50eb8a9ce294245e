import uvicorn

from asaas_gateway.core.settings import get_settings


def main() -> None:
    settings = get_settings()
    # fail before binding the port, like the lifespan check would
    settings.validate_payments()
    uvicorn.run("asaas_gateway.main:app", host="0.0.0.0", port=settings.PORT, log_config=None)


if __name__ == "__main__":
    main()
