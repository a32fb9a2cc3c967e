"""领域层模型与协议。

包含：
- models: ChatMessage / ModelSettings / ProviderId 等统一模型。
- exceptions: 业务异常类型定义。
- cancellation: 请求级取消令牌。
"""
