"""
Budget sheet import: structural analysis of spreadsheet budgets into a
GROUP/ITEM plan tree, with tag prediction that learns from user corrections.
"""

from .analyzer import StructuralAnalyzer
from .corrections import (
    GLOBAL_USER,
    CorrectionLearner,
    ExcelCorrectionStore,
    HydrationError,
    HydrationReport,
    InMemoryCorrectionStore,
)
from .models import (
    CONFIDENCE_THRESHOLD,
    AnalysisNode,
    AnalysisTreeResult,
    ColumnMapping,
    ColumnProfile,
    ItemTag,
    NodeType,
    RowFeatures,
    TagCorrection,
)
from .predictor import LearnedMemory, TagPrediction, TagPredictor
from .reader import FrameSheetReader, SheetReadError, SheetSnapshot, WorkbookSheetReader, open_reader

__all__ = [
    "StructuralAnalyzer",
    "GLOBAL_USER",
    "CorrectionLearner",
    "ExcelCorrectionStore",
    "HydrationError",
    "HydrationReport",
    "InMemoryCorrectionStore",
    "CONFIDENCE_THRESHOLD",
    "AnalysisNode",
    "AnalysisTreeResult",
    "ColumnMapping",
    "ColumnProfile",
    "ItemTag",
    "NodeType",
    "RowFeatures",
    "TagCorrection",
    "LearnedMemory",
    "TagPrediction",
    "TagPredictor",
    "FrameSheetReader",
    "SheetReadError",
    "SheetSnapshot",
    "WorkbookSheetReader",
    "open_reader",
]
