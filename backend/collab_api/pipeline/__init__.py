"""
Collab Platform API - Request Pipeline
=======================================

Stages, outermost first:

    RequestIDMiddleware      correlation ID + RequestContext      (middleware/request_id.py)
    RateLimitMiddleware      fixed-window budget per client IP    (middleware/rate_limit.py)
    RequestLoggingMiddleware request-received / response-sent     (middleware/logging.py)
    PipelineRoute            per-endpoint inner stages            (pipeline/route.py)
      DeadlineEnforcer       bounded handler execution            (pipeline/deadline.py)
      Validation             pydantic schemas, 400 on failure     (schemas/, validators.py)
      Business handler       UserService → UserRepository         (services/, repositories/)
      Response shaper        success envelope                     (pipeline/envelope.py)
    FailureTranslator        every failure → failure envelope     (pipeline/failures.py)
"""
