from sqlalchemy import Column, Integer, String
from database.db import Base

class Batch(Base):
    __tablename__ = "batches"  # 반(batch) 정보 테이블 (외부 관리)

    id = Column(Integer, primary_key=True, index=True)         # 반 고유 ID (Primary Key)
    name = Column(String(100), nullable=False)                 # 반 이름
    subject = Column(String(30))                               # 과목 (예: science, math)
    batch_code = Column(String(30), unique=True)               # 반 코드
