from typing import List

from smartybudget.domain import ALERTING_BUCKETS, DANGER, WARNING, Alert, DerivedView


def evaluate(view: DerivedView) -> List[Alert]:
    """Threshold alerts for Bills, Expenses and Debt items.

    Danger alerts (at or over 100% of planned) come before warnings (at or
    over the item's alert threshold); within a severity the bucket and item
    order of the view is kept. Items with nothing planned never alert.
    """
    danger: List[Alert] = []
    warning: List[Alert] = []

    for bucket in ALERTING_BUCKETS:
        for item in view.bucket(bucket):
            if item.planned <= 0:
                continue
            pct = item.actual / item.planned * 100
            if pct >= 100:
                overage = item.actual - item.planned
                danger.append(Alert(
                    severity=DANGER,
                    bucket=bucket,
                    item_id=item.id,
                    item_name=item.name,
                    percentage=round(pct),
                    overage=overage,
                    message=f'You\'ve exceeded your budget for "{item.name}". You are over by {overage:,.2f}.',
                ))
            elif pct >= item.alert_threshold:
                warning.append(Alert(
                    severity=WARNING,
                    bucket=bucket,
                    item_id=item.id,
                    item_name=item.name,
                    percentage=round(pct),
                    message=f'You\'ve used {round(pct)}% of your budget for "{item.name}".',
                ))

    return danger + warning
