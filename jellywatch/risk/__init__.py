"""
risk — Sighting fusion and jellyfish risk classification.

Sub-modules:
    models      — RiskLevel, Classification, RiskReport
    fanout      — concurrent provider queries under one deadline
    curator     — filter / rank / truncate
    classifier  — risk level, prediction and safety advice
    service     — cache-fronted end-to-end pipeline
"""
