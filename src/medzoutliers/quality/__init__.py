"""
Outlier calling and individual-level QC.

Components:
    MedianZOutlierCaller: one outlier per gene from the median-Z matrix,
        thresholded, with an individual burden filter
    filter_id_list / filter_id_lists: restrict external individual lists to
        the individuals passing the burden filter

Biological Context:
    Multi-tissue expression outliers are associated with nearby rare variants.
    Individuals with an extreme number of outlier genes are typically
    technical artifacts and are removed from both the outlier tables and the
    downstream variant cohorts.

Examples:
    >>> from medzoutliers.quality import MedianZOutlierCaller, filter_id_list
    >>> result = MedianZOutlierCaller(z_threshold=2.0, max_outliers=50).call(zscores, counts)
    >>> wgs = filter_id_list(wgs_ids, result.passing_individuals)
"""

from medzoutliers.quality.outliers import (
    DEFAULT_Z_THRESHOLD,
    DEFAULT_MAX_OUTLIERS,
    OutlierCallResult,
    MedianZOutlierCaller,
    pick_outliers,
    sort_by_magnitude,
    threshold_picks,
    count_outliers_per_individual,
    passing_individuals,
    filter_to_individuals,
    call_outliers,
)
from medzoutliers.quality.filtering import (
    IdListFilterResult,
    filter_id_list,
    filter_id_lists,
)

__all__ = [
    'DEFAULT_Z_THRESHOLD',
    'DEFAULT_MAX_OUTLIERS',
    'OutlierCallResult',
    'MedianZOutlierCaller',
    'pick_outliers',
    'sort_by_magnitude',
    'threshold_picks',
    'count_outliers_per_individual',
    'passing_individuals',
    'filter_to_individuals',
    'call_outliers',
    'IdListFilterResult',
    'filter_id_list',
    'filter_id_lists',
]
