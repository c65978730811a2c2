from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.academic_years.router import router as academic_years_router
from app.api.v1.activity_logs.router import router as activity_logs_router
from app.api.v1.auth.router import router as auth_router
from app.api.v1.cashiers.router import router as cashiers_router
from app.api.v1.dashboard.router import router as dashboard_router
from app.api.v1.expenses.router import router as expenses_router
from app.api.v1.fee_collection.router import router as fee_collection_router
from app.api.v1.fee_structures.router import router as fee_structures_router
from app.api.v1.invoices.router import router as invoices_router
from app.api.v1.masters.router import router as masters_router
from app.api.v1.students.router import router as students_router
from app.core.config import settings
from app.core.logging import configure_logging


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="School Fee Portal")

    # CORS: allow the admin/cashier frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(auth_router)
    app.include_router(academic_years_router)
    app.include_router(masters_router)
    app.include_router(students_router)
    app.include_router(fee_structures_router)
    app.include_router(fee_collection_router)
    app.include_router(invoices_router)
    app.include_router(cashiers_router)
    app.include_router(expenses_router)
    app.include_router(activity_logs_router)
    app.include_router(dashboard_router)

    return app


app = create_app()
