"""
Package Module Tests

Tests for the lettucesee package:
- test_processing.py: Transforms, preprocessing and overlays
- test_decode.py: Output tensor decoding
- test_catalog.py: Class catalog
- test_config.py: detector.yaml access
- test_model.py: ONNX model registry
- test_pipeline.py: End-to-end pipeline
"""
