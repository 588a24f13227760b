from fastapi import FastAPI, HTTPException

from image_converter.api import create_app

try:
    app = create_app(require_enabled=True)
except RuntimeError:
    app = FastAPI(title="Image Converter", version="0.1.0")

    @app.get("/")
    async def api_disabled() -> dict[str, str]:
        raise HTTPException(
            status_code=503,
            detail="Local API disabled. Enable by setting enable_local_api = true in config.toml",
        )


if __name__ == "__main__":
    import uvicorn

    from image_converter.config import load_config

    api = load_config().api
    uvicorn.run(app, host=api.host, port=api.port)
