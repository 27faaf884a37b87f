from app.widgets.labels import label_text, stat_label

__all__ = ["label_text", "stat_label"]
