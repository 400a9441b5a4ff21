"""
Prefect Workflow Orchestration - RFM Segmentation

Scheduled recompute of the RFM table:
- Optional staging of fresh source files into the source tables
- Full RFM recompute for the analysis date
- Alerting on completion and failure
"""

from datetime import date
from typing import Optional

from prefect import flow, get_run_logger, task

from rfm_segmentation.config import get_settings
from rfm_segmentation.database.connection import close_database, init_database
from rfm_segmentation.ingestion.batch_loader import BatchLoader, FileFormat
from rfm_segmentation.transformation.pipeline import RFMPipeline

settings = get_settings()


# =============================================================================
# TASKS
# =============================================================================

@task(
    name="stage_source_files",
    description="Stage source files into the customer, orders and order_detail tables",
    retries=3,
    retry_delay_seconds=60,
)
async def stage_source_files(source_dir: str, file_format: str = "csv") -> dict:
    """Stage a directory of source files"""
    logger = get_run_logger()

    results = await BatchLoader().stage_directory(
        directory=source_dir,
        file_format=FileFormat(file_format),
        replace=True,
    )

    logger.info(f"Staged {sum(r.rows_loaded for r in results)} rows from {len(results)} files")
    return {
        "total_files": len(results),
        "rows_loaded": sum(r.rows_loaded for r in results),
        "results": [r.model_dump() for r in results],
    }


@task(
    name="compute_rfm",
    description="Recompute the RFM table for an analysis date",
)
async def compute_rfm(analysis_date: date) -> dict:
    """Run the pipeline against the configured database"""
    logger = get_run_logger()

    result = await RFMPipeline().run(analysis_date)

    logger.info(
        f"RFM recompute complete: {result.rows_written} customers, "
        f"{result.orders_repaired} order totals repaired"
    )
    return {
        "analysis_date": result.analysis_date.isoformat(),
        "rows_written": result.rows_written,
        "orders_repaired": result.orders_repaired,
        "unresolved_orders": result.reconciliation.unresolved,
        "validation": result.validation.status.value,
        "segments": result.segment_counts,
        "duration_seconds": result.duration_seconds,
    }


@task(
    name="send_alert",
    description="Send alert notification",
)
async def send_alert(
    alert_type: str,
    message: str,
    severity: str = "info",
) -> None:
    """Send alert notification"""
    logger = get_run_logger()
    logger.warning(f"[{severity.upper()}] {alert_type}: {message}")


# =============================================================================
# FLOWS
# =============================================================================

@flow(
    name="rfm_segmentation",
    description="Full recompute of the RFM customer segmentation table",
    retries=1,
    retry_delay_seconds=300,
)
async def rfm_segmentation_flow(
    analysis_date: date,
    source_dir: Optional[str] = None,
    file_format: Optional[str] = None,
) -> dict:
    """
    RFM segmentation pipeline.

    Steps:
    1. Stage source files (only when ``source_dir`` is given)
    2. Recompute the RFM table
    3. Send completion notification

    A failed run leaves the previous RFM table in place; the flow retry
    re-runs the whole pipeline.
    """
    logger = get_run_logger()

    file_format = file_format or settings.data_lake.default_format

    logger.info(f"Starting RFM segmentation for {analysis_date.isoformat()}")

    results = {
        "analysis_date": analysis_date.isoformat(),
        "steps": {},
    }

    await init_database(create_tables=True)
    try:
        if source_dir:
            results["steps"]["stage"] = await stage_source_files(source_dir, file_format)

        results["steps"]["rfm"] = await compute_rfm(analysis_date)

        await send_alert(
            alert_type="RFM Complete",
            message=f"RFM table recomputed for {analysis_date.isoformat()}",
            severity="info",
        )
        results["status"] = "success"

    except Exception as e:
        logger.error(f"RFM pipeline failed: {e}")

        await send_alert(
            alert_type="RFM Failed",
            message=f"RFM segmentation failed: {str(e)}",
            severity="critical",
        )
        raise

    finally:
        await close_database()

    return results


if __name__ == "__main__":
    import asyncio
    import sys

    asyncio.run(rfm_segmentation_flow(date.fromisoformat(sys.argv[1])))
