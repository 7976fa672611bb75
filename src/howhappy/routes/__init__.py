from howhappy.routes.responses import router as responses_router

__all__ = ["responses_router"]
