# CellGuard - Example Usage

from cellguard import AnomalyEngine

engine = AnomalyEngine()
print("CellGuard - Spreadsheet Anomaly Detection")
print("=" * 50)

# Monthly revenue with one mistyped entry
revenue = [[10], [100], [102], [98], [101], [99], [103], [97], [100], [101]]
outcome = engine.detect(revenue, "Sheet1!B2:B11")

print(f"Anomalies found: {outcome.total_found}")
for anomaly in outcome.anomalies:
    print(f"  row {anomaly.row}, col {anomaly.col}: {anomaly.reason} "
          f"(confidence {anomaly.confidence:.2f})")

# The user confirms the flag was correct
engine.apply_feedback("Sheet1!B2:B11", was_accurate=True)
print(f"\nThresholds: {engine.thresholds.to_dict()}")
print(f"History: {engine.history_stats()}")
