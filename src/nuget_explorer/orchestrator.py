"""
Orchestration of batch package analysis.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, Future
from datetime import datetime
from typing import List, Dict, Any, Iterable, Optional

from .analyzers import UpdateChecker, LicenseAnalyzer
from .error_handling.cancellation import CancellationToken, raise_if_cancelled
from .error_handling.exceptions import AnalysisCancelledError, PackageAnalysisError
from .models import (
    PackageReference, PackageAnalysis, PackageAnalysisOptions, PackageAnalysisResult,
    AnalysisSummary, SeverityCounts, SeverityLevel, Vulnerability
)
from .sources import VulnerabilityClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 16


def filter_vulnerabilities(vulnerabilities: Iterable[Vulnerability], minimum_severity: SeverityLevel) -> List[Vulnerability]:
    """Keep vulnerabilities at or above ``minimum_severity``; ALL keeps everything."""
    if minimum_severity <= SeverityLevel.ALL:
        return list(vulnerabilities)
    return [v for v in vulnerabilities if v.severity >= minimum_severity]


def build_summary(analyses: List[PackageAnalysis]) -> AnalysisSummary:
    """
    Aggregate per-package results into batch statistics.

    Args:
        analyses: One record per analyzed package

    Returns:
        Batch summary
    """
    packages_with_updates = sum(1 for a in analyses if a.has_update)
    all_vulnerabilities = [v for a in analyses for v in a.vulnerabilities]

    return AnalysisSummary(
        total_packages=len(analyses),
        packages_with_updates=packages_with_updates,
        vulnerable_packages=sum(1 for a in analyses if a.is_vulnerable),
        packages_with_license_changes=sum(1 for a in analyses if a.has_license_change),
        up_to_date=len(analyses) - packages_with_updates,
        severity_counts=SeverityCounts.from_vulnerabilities(all_vulnerabilities)
    )


class PackageAnalyzer:
    """
    Coordinates update, vulnerability and license checks for a batch of packages.

    Every distinct package is analyzed as an independent unit on a bounded
    worker pool. A unit that fails yields a record with no findings instead
    of failing the batch; cancellation is the one exception and aborts the
    whole batch.
    """

    def __init__(
        self,
        update_checker: UpdateChecker,
        license_analyzer: LicenseAnalyzer,
        vulnerability_client: Optional[VulnerabilityClient] = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    ):
        """
        Initialize the analyzer.

        Args:
            update_checker: Finds newer versions
            license_analyzer: Compares licenses between versions
            vulnerability_client: Vulnerability feed, or None to skip vulnerability checks
            max_concurrency: Maximum number of packages analyzed at once
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self.update_checker = update_checker
        self.license_analyzer = license_analyzer
        self.vulnerability_client = vulnerability_client
        self.max_concurrency = max_concurrency

        self._statistics_lock = threading.Lock()
        self._analysis_statistics: Dict[str, Any] = {
            "batches": 0,
            "packages_analyzed": 0,
            "packages_failed": 0,
            "last_batch_started": None,
            "last_batch_finished": None
        }

    def analyze_packages(
        self,
        packages: Iterable[PackageReference],
        options: Optional[PackageAnalysisOptions] = None,
        cancellation: Optional[CancellationToken] = None
    ) -> PackageAnalysisResult:
        """
        Analyze a batch of packages.

        Args:
            packages: Package references; duplicates are analyzed once
            options: Checks to run and the vulnerability severity threshold
            cancellation: Cancels the whole batch when triggered

        Returns:
            One analysis per distinct package, in first-seen order, with the summary

        Raises:
            AnalysisCancelledError: If the batch was cancelled
        """
        options = options or PackageAnalysisOptions()
        distinct_packages = list(dict.fromkeys(packages))

        raise_if_cancelled(cancellation)
        with self._statistics_lock:
            self._analysis_statistics["batches"] += 1
            self._analysis_statistics["last_batch_started"] = datetime.now()

        logger.info(f"Starting analysis of {len(distinct_packages)} packages")

        analyses: List[PackageAnalysis] = []
        if distinct_packages:
            workers = min(self.max_concurrency, len(distinct_packages))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="package-unit") as unit_pool, \
                    ThreadPoolExecutor(max_workers=workers, thread_name_prefix="package-check") as check_pool:
                futures = [
                    unit_pool.submit(self._analyze_unit, package, options, cancellation, check_pool)
                    for package in distinct_packages
                ]
                analyses = self._collect(futures)

        raise_if_cancelled(cancellation)

        summary = build_summary(analyses)
        with self._statistics_lock:
            self._analysis_statistics["packages_analyzed"] += len(analyses)
            self._analysis_statistics["last_batch_finished"] = datetime.now()

        logger.info(
            f"Analysis complete: {summary.packages_with_updates} with updates, "
            f"{summary.vulnerable_packages} vulnerable, "
            f"{summary.packages_with_license_changes} with license changes"
        )

        return PackageAnalysisResult(summary=summary, packages=tuple(analyses))

    @staticmethod
    def _collect(futures: List[Future]) -> List[PackageAnalysis]:
        """Join unit futures in input order, cancelling the rest on batch cancellation."""
        results = []
        try:
            for future in futures:
                results.append(future.result())
        except AnalysisCancelledError:
            for future in futures:
                future.cancel()
            logger.warning("Package analysis cancelled")
            raise
        return results

    def _analyze_unit(
        self,
        package: PackageReference,
        options: PackageAnalysisOptions,
        cancellation: Optional[CancellationToken],
        check_pool: ThreadPoolExecutor
    ) -> PackageAnalysis:
        try:
            return self.analyze_package(package, options, cancellation, check_pool)
        except AnalysisCancelledError:
            raise
        except Exception as e:
            error = PackageAnalysisError(
                f"Failed to analyze package {package.id}",
                package_id=package.id, version=package.version, cause=e
            )
            logger.error(str(error))
            with self._statistics_lock:
                self._analysis_statistics["packages_failed"] += 1
            return PackageAnalysis(id=package.id, current_version=package.version)

    def analyze_package(
        self,
        package: PackageReference,
        options: PackageAnalysisOptions,
        cancellation: Optional[CancellationToken] = None,
        check_pool: Optional[ThreadPoolExecutor] = None
    ) -> PackageAnalysis:
        """
        Analyze a single package.

        The vulnerability check runs on ``check_pool`` while the update check
        runs on the calling thread; the license check follows the update
        check and only runs when an update was found.

        Raises:
            Any exception from the checks, unconverted
        """
        logger.debug(f"Analyzing package {package}")

        vulnerability_future: Optional[Future] = None
        vulnerabilities: List[Vulnerability] = []

        if options.check_vulnerabilities and self.vulnerability_client is not None:
            if check_pool is not None:
                vulnerability_future = check_pool.submit(
                    self.vulnerability_client.get_vulnerabilities, package, cancellation
                )
            else:
                vulnerabilities = self.vulnerability_client.get_vulnerabilities(package, cancellation)

        updates = None
        if options.check_updates:
            updates = self.update_checker.check_for_update(package, options, cancellation)

        if vulnerability_future is not None:
            vulnerabilities = vulnerability_future.result()

        license_change = None
        if options.check_licenses and updates is not None:
            license_change = self.license_analyzer.check_license_change(
                package, updates.latest_stable_version, cancellation
            )

        return PackageAnalysis(
            id=package.id,
            current_version=package.version,
            updates=updates,
            vulnerabilities=tuple(filter_vulnerabilities(vulnerabilities, options.minimum_severity)),
            license=license_change
        )

    def get_analysis_statistics(self) -> Dict[str, Any]:
        """Get counters for the batches run by this analyzer."""
        with self._statistics_lock:
            return self._analysis_statistics.copy()
