import argparse
import logging
import pathlib
import sys
from datetime import datetime

from dotenv import load_dotenv

load_dotenv()

from src.comparison import (
    Z_95,
    FittedModelSummary,
    ReportCollector,
    compare_all,
    comparisons_to_frame,
    critical_value_for,
    generate_markdown_report,
    plot_comparisons,
)
from src.database import (
    add_model_fit,
    get_all_model_fits,
    get_model_fit,
    get_model_fit_by_id,
    init_db,
)
from src.database.models import FitStatus, ModelKind
from src.modeling import (
    compare_aic,
    fit_model,
    load_summary_file,
    load_table,
    parse_formula_columns,
    plot_model_predictions,
    variance_decomposition,
)


def configure_logging(log_level: str):
    """Configure logging with the specified level."""
    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )
    return logging.getLogger(__name__)


def _resolve_data_path(data_arg: str) -> pathlib.Path:
    """Resolve --data argument into an existing CSV file."""
    path = pathlib.Path(data_arg)

    if not path.exists():
        raise SystemExit(f"Path does not exist: {path}")
    if not path.is_file() or path.suffix.lower() != ".csv":
        raise SystemExit(f"Not a CSV file: {path}")
    return path.resolve()


def _load_for_formulas(path, formulas, group=None):
    required = []
    for formula in formulas:
        required.extend(parse_formula_columns(formula))
    if group:
        required.append(group)
    return load_table(path, required_columns=list(dict.fromkeys(required)))


def _resolve_summary_sources(json_arg: str) -> list[pathlib.Path]:
    """Resolve --json argument into a list of summary files."""
    path = pathlib.Path(json_arg)

    if path.is_file():
        if path.suffix != ".json":
            raise SystemExit(f"File must be a JSON file: {path}")
        return [path]

    if path.is_dir():
        files = sorted(path.glob("*.json"))
        if not files:
            raise SystemExit(f"No JSON files found in directory: {path}")
        return files

    raise SystemExit(f"Path does not exist: {path}")


def cmd_fit(args):
    """Fit a model to a measurement table and store its fixed effects."""
    logger = configure_logging(args.log_level)
    init_db()

    path = _resolve_data_path(args.data)
    source = str(path)
    kind = ModelKind.MIXED if args.group else ModelKind.OLS

    existing = get_model_fit(source, args.formula, kind)
    if existing and existing.status == FitStatus.SUCCESS and not args.force:
        logger.info(f"Already fitted as ID {existing.id} (use --force to refit)")
        return

    try:
        df = _load_for_formulas(path, [args.formula], group=args.group)
        outcome = fit_model(df, args.formula, group=args.group, reml=args.reml)
        # REML likelihoods are not comparable, only mixed fits use REML
        aic = None if kind == ModelKind.MIXED and args.reml else outcome.aic

        record = add_model_fit(
            source=source,
            formula=args.formula,
            kind=kind,
            status=FitStatus.SUCCESS,
            group_column=args.group,
            coefficients_json=outcome.summary.to_dict(),
            aic=aic,
        )
        logger.info(f"Stored fit with ID {record.id}")
    except Exception as e:
        add_model_fit(
            source=source,
            formula=args.formula,
            kind=kind,
            status=FitStatus.FAILED,
            group_column=args.group,
            error_msg=str(e),
        )
        logger.error(f"Fitting failed: {e}")
        return

    print(outcome.summary.to_frame().to_string(float_format=lambda v: f"{v:.4f}"))

    if kind == ModelKind.MIXED:
        decomposition = variance_decomposition(outcome)
        print(
            f"\nGroup variance: {decomposition.group_variance:.4f}  "
            f"Residual variance: {decomposition.residual_variance:.4f}  "
            f"ICC: {decomposition.icc:.3f}"
        )

    if args.plot_x:
        try:
            plot_model_predictions(
                df,
                outcome=parse_formula_columns(args.formula)[0],
                x=args.plot_x,
                results=outcome.results,
                group=args.group,
                save_path=args.save_plot,
            )
        except Exception as e:
            logger.error(f"Plotting failed: {str(e)}")


def cmd_compare(args):
    """Compare every pair of fixed-effect coefficients."""
    logger = configure_logging(args.log_level)

    # Setup report collector if report is requested
    report_collector = ReportCollector() if args.report else None
    report_plots_enabled = args.report and args.report_plots

    # Setup report output paths
    if args.report:
        if args.report is True:
            # Default path
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            report_path = pathlib.Path(f"reports/comparison_report_{timestamp}.md")
        else:
            report_path = pathlib.Path(args.report)

        # Create figures directory if report plots are enabled
        if report_plots_enabled:
            figures_dir = report_path.parent / "figures"
            figures_dir.mkdir(parents=True, exist_ok=True)

    # Build list of items to compare: [(model_id, source, formula, kind, aic, summary), ...]
    items = []

    if args.json:
        for idx, json_file in enumerate(_resolve_summary_sources(args.json)):
            try:
                parsed, summary = load_summary_file(json_file)
            except Exception as e:
                logger.error(f"Invalid summary file {json_file.name}: {e}")
                if report_collector:
                    report_collector.add_result(
                        model_id=str(idx + 1), source=json_file.name, error=str(e)
                    )
                continue
            items.append((str(idx + 1), json_file.name, parsed.formula, parsed.model, None, summary))
    else:
        init_db()

        if args.id:
            model_fit = get_model_fit_by_id(args.id)
            if not model_fit:
                logger.error(f"No model fit found with ID: {args.id}")
                return
            if model_fit.status != FitStatus.SUCCESS:
                logger.error(f"Model fit {args.id} failed, no coefficients to compare")
                return
            fits = [model_fit]
        else:
            fits = get_all_model_fits(status=FitStatus.SUCCESS)
            if not fits:
                logger.warning("No successful model fits found in database")
                return

        for fit in fits:
            summary = FittedModelSummary.from_dict(fit.coefficients_json)
            items.append((str(fit.id), fit.source, fit.formula, fit.kind.value, fit.aic, summary))

    logger.info(f"Found {len(items)} model(s) to compare")

    # Determine if interactive plotting should be enabled
    plot_enabled = args.plot and len(items) == 1
    if args.plot and len(items) > 1:
        logger.warning(
            "Interactive plotting is only supported for a single model. Plotting will be disabled."
        )

    try:
        critical_value = Z_95 if args.confidence is None else critical_value_for(args.confidence)
    except ValueError as e:
        raise SystemExit(str(e))

    for model_id, source, formula, kind, aic, summary in items:
        logger.info(f"Processing: {formula or source}")
        results = []
        error_msg = None
        plot_path = None

        try:
            results = list(
                compare_all(
                    summary,
                    names=args.names,
                    on_error="skip",
                    critical_value=critical_value,
                )
            )
            df = comparisons_to_frame(results, sort_by=args.sort)
            print(f"\nModel {model_id}: {formula or source}")
            print(df.to_string(index=False, float_format=lambda v: f"{v:.4f}"))
            print("Intervals assume independent coefficient estimates (covariance ignored).")
        except Exception as e:
            error_msg = str(e)
            logger.error(f"Error processing {source}: {error_msg}")

        # Handle plotting
        if results and not error_msg:
            ordered = sorted(results, key=lambda r: r.estimate, reverse=True)
            try:
                if report_plots_enabled:
                    plot_path = str(figures_dir / f"model_{model_id}_comparisons.png")
                    plot_comparisons(ordered, save_path=plot_path, title=formula)
                elif plot_enabled:
                    plot_comparisons(ordered, title=formula)
            except Exception as e:
                logger.error(f"Plotting failed: {str(e)}")

        # Collect results for report
        if report_collector:
            report_collector.add_result(
                model_id=model_id,
                source=source,
                formula=formula,
                kind=kind,
                aic=aic,
                summary=summary,
                comparisons=results,
                plot_path=plot_path,
                error=error_msg,
            )

    # Generate report if requested
    if report_collector:
        generate_markdown_report(report_collector, str(report_path))
        logger.info(f"Report generated: {report_path}")


def cmd_aic(args):
    """Fit several formulas to the same data and rank them by AIC."""
    logger = configure_logging(args.log_level)

    path = _resolve_data_path(args.data)
    # Same rows for every model, otherwise AIC values are not comparable
    df = _load_for_formulas(path, args.formula, group=args.group)

    fits = {}
    for formula in args.formula:
        try:
            fits[formula] = fit_model(df, formula, group=args.group)
        except Exception as e:
            logger.error(f"Fitting '{formula}' failed: {e}")

    if not fits:
        logger.error("No models could be fitted")
        return

    table = compare_aic(fits)
    print(table.to_string(float_format=lambda v: f"{v:.2f}"))


def cmd_list(args):
    """List all model fits in the database."""
    init_db()

    # Get model fits with optional status filter
    status_filter = None
    if args.status:
        status_filter = FitStatus(args.status)

    fits = get_all_model_fits(status=status_filter)

    if not fits:
        print("No model fits found in database.")
        return

    # Print header
    print(f"\n{'ID':<6} {'Status':<10} {'Kind':<7} {'Fitted At':<20} {'Formula':<35} {'Source'}")
    print("-" * 110)

    for fit in fits:
        source = fit.source
        if len(source) > 35:
            source = "..." + source[-32:]
        formula = fit.formula
        if len(formula) > 35:
            formula = formula[:32] + "..."
        fitted_at = fit.fitted_at.strftime("%Y-%m-%d %H:%M") if fit.fitted_at else "N/A"
        print(
            f"{fit.id:<6} {fit.status.value:<10} {fit.kind.value:<7} {fitted_at:<20} "
            f"{formula:<35} {source}"
        )

    print(f"\nTotal: {len(fits)} model fit(s)")


def _add_log_level(parser):
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set logging level (default: INFO)",
    )


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Coef Compare - fit models and compare fixed-effect coefficients",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Fit command
    fit_parser = subparsers.add_parser("fit", help="Fit a model to a CSV table and store it")
    fit_parser.add_argument("--data", required=True, help="CSV file with measurements")
    fit_parser.add_argument(
        "--formula",
        required=True,
        help="Model formula, e.g. 'weight ~ height + C(diet)'",
    )
    fit_parser.add_argument(
        "--group",
        help="Grouping column for a random intercept (fits a mixed model)",
    )
    fit_parser.add_argument(
        "--reml",
        action="store_true",
        help="Fit mixed models by REML (AIC is not stored for REML fits)",
    )
    fit_parser.add_argument(
        "--force",
        action="store_true",
        help="Refit even if this model was already fitted",
    )
    fit_parser.add_argument(
        "--plot-x",
        help="Plot observations and fitted values against this column",
    )
    fit_parser.add_argument(
        "--save-plot",
        metavar="PATH",
        help="Save the prediction plot instead of showing it (requires --plot-x)",
    )
    _add_log_level(fit_parser)
    fit_parser.set_defaults(func=cmd_fit)

    # Compare command
    compare_parser = subparsers.add_parser(
        "compare", help="Compare all pairs of fixed-effect coefficients"
    )
    source_group = compare_parser.add_mutually_exclusive_group()
    source_group.add_argument(
        "--id",
        type=int,
        help="Compare a specific model fit by database ID",
    )
    source_group.add_argument(
        "--json",
        help="Path to summary JSON file or directory. If not provided, uses database.",
    )
    compare_parser.add_argument(
        "--names",
        nargs="+",
        help="Only compare these coefficients (default: all)",
    )
    compare_parser.add_argument(
        "--sort",
        choices=["estimate", "name"],
        help="Sort comparisons by estimate or by name",
    )
    compare_parser.add_argument(
        "--confidence",
        type=float,
        help="Confidence level of the intervals (default: 0.95, critical value 1.96)",
    )
    compare_parser.add_argument(
        "--plot",
        action="store_true",
        help="Show a forest plot of the comparisons (only works with a single model)",
    )
    compare_parser.add_argument(
        "--report",
        nargs="?",
        const=True,
        default=False,
        metavar="PATH",
        help="Generate a Markdown report. Optionally specify output path (default: reports/comparison_report_<timestamp>.md)",
    )
    compare_parser.add_argument(
        "--report-plots",
        action="store_true",
        help="Include plots in the report (requires --report)",
    )
    _add_log_level(compare_parser)
    compare_parser.set_defaults(func=cmd_compare)

    # AIC command
    aic_parser = subparsers.add_parser("aic", help="Rank several model formulas by AIC")
    aic_parser.add_argument("--data", required=True, help="CSV file with measurements")
    aic_parser.add_argument(
        "--formula",
        required=True,
        action="append",
        help="Model formula; repeat to compare several models",
    )
    aic_parser.add_argument(
        "--group",
        help="Grouping column for a random intercept (fits mixed models)",
    )
    _add_log_level(aic_parser)
    aic_parser.set_defaults(func=cmd_aic)

    # List command
    list_parser = subparsers.add_parser("list", help="List all model fits in the database")
    list_parser.add_argument(
        "--status",
        choices=["success", "failed"],
        help="Filter by fit status",
    )
    list_parser.set_defaults(func=cmd_list)

    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    if args.command is None:
        parser.print_help()
        return

    args.func(args)


if __name__ == "__main__":
    main()
