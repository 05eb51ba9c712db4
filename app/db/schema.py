"""Database schema for benchmark reports."""

from sqlalchemy import Column, DateTime, Float, Index, Integer, Text, func, text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class BenchmarkDB(Base):
    """One llama-bench invocation."""

    __tablename__ = "benchmarks"
    __table_args__ = (
        Index("idx_build_commit", "build_commit"),
        Index("idx_model_filename", "model_filename"),
        Index("idx_test_time", "test_time"),
        Index("idx_test_type", "test_type"),
        Index("idx_gpu_info", "gpu_info"),
        # ids of deleted rows are never handed out again
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime, server_default=func.current_timestamp())

    # Build info
    build_commit = Column(Text)
    build_number = Column(Integer)
    test_time = Column(Text)

    # Hardware
    cpu_info = Column(Text)
    gpu_info = Column(Text)  # multiple GPUs are joined with ", "
    backend = Column(Text)

    # Model
    model_filename = Column(Text)
    model_type = Column(Text)
    model_size = Column(Integer)
    model_n_params = Column(Integer)

    # Test parameters
    test_type = Column(Text)
    n_prompt = Column(Integer)
    n_gen = Column(Integer)
    n_depth = Column(Integer)
    n_batch = Column(Integer)
    n_ubatch = Column(Integer)
    n_threads = Column(Integer)
    n_gpu_layers = Column(Integer)
    n_ctx = Column(Integer)
    flash_attn = Column(Integer, nullable=False, server_default=text("0"))
    cache_type_k = Column(Text)
    cache_type_v = Column(Text)
    embeddings = Column(Integer, nullable=False, server_default=text("0"))
    split_mode = Column(Text)
    main_gpu = Column(Integer)

    # Results
    tokens_per_second = Column(Float)
    stddev = Column(Float)
    samples = Column(Text)  # JSON array


benchmarks_table = BenchmarkDB.__table__
